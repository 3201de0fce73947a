import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from db import Gateway
from db.database import get_db
from models.records import SpendCreate, SpendUpdate
from utils.auth import require_auth
from utils.errors import AlreadyUndoneError, NotFoundError, ValidationError
from utils.points import get_current_points

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_spend_or_404(db: Gateway, spend_id: int) -> dict:
    spend = db.single("spend_records", {"id": spend_id})
    if not spend:
        raise NotFoundError("Spend record not found")
    return spend


@router.get("")
async def list_spend(
    user_id: Optional[int] = None,
    since: Optional[str] = None,
    undone: Optional[bool] = None,
    conn=Depends(get_db),
):
    where = {}
    if user_id is not None:
        where["user_id"] = user_id
    if since:
        where["spent_at"] = (">=", since)
    if undone is not None:
        where["undone"] = int(undone)
    items = Gateway(conn).select("spend_records", where, order_by="spent_at", descending=True)
    return {"items": items, "total": len(items)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_auth)])
async def create_spend(body: SpendCreate, conn=Depends(get_db)):
    db = Gateway(conn)
    if not db.single("users", {"id": body.user_id}):
        raise NotFoundError("User not found")
    current = get_current_points(conn, body.user_id)
    if body.points_spent > current:
        raise ValidationError(
            f"Insufficient points. Current: {current}, Requested: {body.points_spent}"
        )
    spend = db.insert(
        "spend_records",
        {"user_id": body.user_id, "points_spent": body.points_spent, "note": body.note},
    )
    conn.commit()
    logger.info("User %s spent %s points", body.user_id, body.points_spent)
    return spend


@router.get("/{spend_id}")
async def get_spend(spend_id: int, conn=Depends(get_db)):
    return _get_spend_or_404(Gateway(conn), spend_id)


@router.patch("/{spend_id}", dependencies=[Depends(require_auth)])
async def update_spend(spend_id: int, body: SpendUpdate, conn=Depends(get_db)):
    db = Gateway(conn)
    changes = body.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if not (k == "points_spent" and v is None)}
    if not changes:
        raise ValidationError("No fields to update")
    spend = _get_spend_or_404(db, spend_id)
    if spend["undone"]:
        raise ValidationError("Cannot edit an undone spend record")
    new_amount = changes.get("points_spent")
    if new_amount is not None and new_amount > spend["points_spent"]:
        available = get_current_points(conn, spend["user_id"]) + spend["points_spent"]
        if new_amount > available:
            raise ValidationError(
                f"Insufficient points. Current: {available}, Requested: {new_amount}"
            )
    updated = db.update("spend_records", changes, {"id": spend_id})[0]
    conn.commit()
    return updated


@router.post("/{spend_id}/undo", dependencies=[Depends(require_auth)])
async def undo_spend(spend_id: int, conn=Depends(get_db)):
    """Reverse a redemption by flagging it; the row itself is kept."""
    db = Gateway(conn)
    spend = _get_spend_or_404(db, spend_id)
    if spend["undone"]:
        raise AlreadyUndoneError("Record already undone")
    # Matches only while still active; a concurrent undo updates nothing
    rows = db.update("spend_records", {"undone": 1}, {"id": spend_id, "undone": 0})
    if not rows:
        conn.rollback()
        raise AlreadyUndoneError("Record already undone")
    conn.commit()
    logger.info("Spend record %s undone", spend_id)
    return rows[0]
