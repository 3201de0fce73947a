from typing import Optional

from fastapi import APIRouter, Depends, status

from db import Gateway
from db.database import get_db
from models.records import BonusCreate
from models.user import AuthUser
from utils.auth import require_auth
from utils.errors import NotFoundError

router = APIRouter()


@router.get("")
async def list_bonus(user_id: Optional[int] = None, conn=Depends(get_db)):
    where = {"user_id": user_id} if user_id is not None else None
    items = Gateway(conn).select("bonus_records", where, order_by="awarded_at", descending=True)
    return {"items": items, "total": len(items)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bonus(
    body: BonusCreate,
    user: AuthUser = Depends(require_auth),
    conn=Depends(get_db),
):
    """Manual adjustment; negative amounts correct earlier mistakes."""
    db = Gateway(conn)
    if not db.single("users", {"id": body.user_id}):
        raise NotFoundError("User not found")
    bonus = db.insert(
        "bonus_records",
        {
            "user_id": body.user_id,
            "points_awarded": body.points_awarded,
            "reason": body.reason,
            "category": body.category,
            "awarded_by": body.awarded_by or user.name,
        },
    )
    conn.commit()
    return bonus
