import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, status

from db import Gateway, sql_now
from db.database import get_db
from models.memory_item import ItemType, MemoryItemCreate, MemoryItemUpdate
from utils.auth import require_admin
from utils.errors import ConflictError, DuplicateError, NotFoundError, ValidationError
from utils.settings import get_or_create_settings

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_item_or_404(db: Gateway, item_id: int) -> dict:
    item = db.single("memory_items", {"id": item_id})
    if not item:
        raise NotFoundError("Memory item not found")
    return item


@router.get("")
async def list_memory_items(
    active: Optional[bool] = None,
    type: Optional[ItemType] = None,
    q: Optional[str] = None,
    conn=Depends(get_db),
):
    where = {}
    if active is not None:
        where["active"] = int(active)
    if type:
        where["type"] = type
    if q and q.strip():
        where["reference"] = ("like", f"%{q.strip()}%")
    items = Gateway(conn).select("memory_items", where, order_by="reference")
    return {"items": items, "total": len(items)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_memory_item(body: MemoryItemCreate, conn=Depends(get_db)):
    """Create an item; points not given fall back to the program defaults."""
    db = Gateway(conn)
    reference = body.reference.strip()
    if not reference:
        raise ValidationError("Reference is required")
    settings = get_or_create_settings(conn)
    values = {
        "type": body.type,
        "reference": reference,
        "text": body.text,
        "points_first": body.points_first
        if body.points_first is not None
        else settings["default_points_first"],
        "points_repeat": body.points_repeat
        if body.points_repeat is not None
        else settings["default_points_repeat"],
        "active": int(body.active),
        "bible_version": body.bible_version,
    }
    existing = db.single("memory_items", {"reference": reference})
    if existing:
        if existing["active"]:
            raise DuplicateError("Memory item already exists")
        # Inactive duplicates come back to life with the new values
        values["active"] = 1
        values["updated_at"] = sql_now()
        item = db.update("memory_items", values, {"id": existing["id"]})[0]
        conn.commit()
        logger.info("Reactivated memory item %s", item["id"])
        return item
    try:
        item = db.insert("memory_items", values)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("Memory item already exists")
    logger.info("Created memory item %s (%s)", item["id"], reference)
    return item


@router.get("/{item_id}")
async def get_memory_item(item_id: int, conn=Depends(get_db)):
    return _get_item_or_404(Gateway(conn), item_id)


@router.patch("/{item_id}", dependencies=[Depends(require_admin)])
async def update_memory_item(item_id: int, body: MemoryItemUpdate, conn=Depends(get_db)):
    db = Gateway(conn)
    changes = body.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k in ("text", "bible_version")}
    if not changes:
        raise ValidationError("No fields to update")
    _get_item_or_404(db, item_id)
    if "reference" in changes:
        changes["reference"] = changes["reference"].strip()
        if not changes["reference"]:
            raise ValidationError("Reference cannot be empty")
    if "active" in changes:
        changes["active"] = int(changes["active"])
    changes["updated_at"] = sql_now()
    try:
        item = db.update("memory_items", changes, {"id": item_id})[0]
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise DuplicateError("Memory item already exists")
    return item


@router.delete("/{item_id}", dependencies=[Depends(require_admin)])
async def delete_memory_item(item_id: int, conn=Depends(get_db)):
    """Delete an unused item; items with recitations can only be deactivated."""
    db = Gateway(conn)
    _get_item_or_404(db, item_id)
    if db.count("verse_records", {"memory_item_id": item_id}):
        raise ConflictError("Cannot delete memory item with existing records; deactivate it instead")
    db.delete("memory_items", {"id": item_id})
    conn.commit()
    logger.info("Deleted memory item %s", item_id)
    return {"success": True}
