import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from db import Gateway, sql_now
from db.database import get_db
from models.user import UserCreate, UserUpdate
from utils.auth import require_auth
from utils.errors import DuplicateError, NotFoundError, ValidationError
from utils.points import get_point_breakdown

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _get_summary_or_404(db: Gateway, user_id: int) -> dict:
    user = db.single("user_points_summary", {"id": user_id})
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("")
async def list_users(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    conn=Depends(get_db),
):
    """Users with their current points, ordered by name."""
    db = Gateway(conn)
    where = {"name": ("like", f"%{q.strip()}%")} if q and q.strip() else None
    total = db.count("user_points_summary", where)
    items = db.select(
        "user_points_summary",
        where,
        order_by="name",
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_auth)])
async def create_user(body: UserCreate, conn=Depends(get_db)):
    db = Gateway(conn)
    try:
        user = db.insert(
            "users",
            {
                "name": body.name,
                "role": "leader" if body.is_leader else "student",
                "is_leader": int(body.is_leader),
                "notes": body.notes,
                "emoji_icon": body.emoji_icon,
            },
        )
        if body.legacy_points:
            db.insert(
                "bonus_records",
                {
                    "user_id": user["id"],
                    "points_awarded": body.legacy_points,
                    "reason": "Legacy points",
                    "category": "legacy",
                },
            )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("User with this name already exists")
    logger.info("Created user %s", user["id"])
    return _get_summary_or_404(db, user["id"])


@router.get("/{user_id}")
async def get_user(user_id: int, conn=Depends(get_db)):
    return _get_summary_or_404(Gateway(conn), user_id)


@router.get("/{user_id}/points")
async def get_user_points(user_id: int, conn=Depends(get_db)):
    """Balance breakdown: verse points, bonus, spent, earned and current."""
    _get_summary_or_404(Gateway(conn), user_id)
    return {"user_id": user_id, **get_point_breakdown(conn, user_id)}


@router.patch("/{user_id}", dependencies=[Depends(require_auth)])
async def update_user(user_id: int, body: UserUpdate, conn=Depends(get_db)):
    db = Gateway(conn)
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    existing = db.single("users", {"id": user_id})
    if not existing:
        raise NotFoundError("User not found")
    if "name" in changes:
        if changes["name"] is None or not changes["name"].strip():
            raise ValidationError("Name cannot be empty")
        changes["name"] = changes["name"].strip()
    if "is_leader" in changes and changes["is_leader"] is not None:
        changes["is_leader"] = int(changes["is_leader"])
        if existing["role"] != "admin":
            changes["role"] = "leader" if changes["is_leader"] else "student"
    if changes.get("display_accommodation_note") is not None:
        changes["display_accommodation_note"] = int(changes["display_accommodation_note"])
    changes = {k: v for k, v in changes.items() if v is not None or k in ("notes", "emoji_icon")}
    changes["updated_at"] = sql_now()
    try:
        db.update("users", changes, {"id": user_id})
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("User with this name already exists")
    return _get_summary_or_404(db, user_id)
