import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from config import get_config_value
from db import Gateway, sql_now
from db.database import get_db
from models.records import VerseRecordCreate
from utils.auth import require_auth
from utils.bible import fetch_bible_verse, validate_bible_reference
from utils.errors import NotFoundError, ValidationError
from utils.points import calculate_default_points
from utils.records import create_verse_record, get_record_info

router = APIRouter()
logger = logging.getLogger(__name__)

RECORD_SELECT = """
    SELECT
        r.*,
        u.name AS user_name,
        u.is_leader AS user_is_leader,
        m.reference AS item_reference,
        m.type AS item_type,
        m.text AS item_text,
        m.points_first AS item_points_first,
        m.points_repeat AS item_points_repeat
    FROM verse_records r
    JOIN users u ON u.id = r.user_id
    JOIN memory_items m ON m.id = r.memory_item_id
"""


def _record_from_row(row) -> dict:
    data = dict(row)
    return {
        "id": data["id"],
        "user_id": data["user_id"],
        "memory_item_id": data["memory_item_id"],
        "record_type": data["record_type"],
        "occurrence": data["occurrence"],
        "points_awarded": data["points_awarded"],
        "applied_multiplier": data["applied_multiplier"],
        "applied_promo": data["applied_promo"],
        "recorded_at": data["recorded_at"],
        "user": {
            "id": data["user_id"],
            "name": data["user_name"],
            "is_leader": bool(data["user_is_leader"]),
        },
        "memory_item": {
            "id": data["memory_item_id"],
            "reference": data["item_reference"],
            "type": data["item_type"],
            "text": data["item_text"],
            "points_first": data["item_points_first"],
            "points_repeat": data["item_points_repeat"],
        },
    }


@router.get("")
async def list_records(
    user_id: Optional[int] = None,
    memory_item_id: Optional[int] = None,
    since: Optional[str] = None,
    conn=Depends(get_db),
):
    filters = []
    params: list[object] = []
    if user_id is not None:
        filters.append("r.user_id = ?")
        params.append(user_id)
    if memory_item_id is not None:
        filters.append("r.memory_item_id = ?")
        params.append(memory_item_id)
    if since:
        filters.append("r.recorded_at >= ?")
        params.append(since)
    where_clause = f"WHERE {' AND '.join(filters)}" if filters else ""
    cursor = conn.cursor()
    cursor.execute(f"{RECORD_SELECT} {where_clause} ORDER BY r.recorded_at DESC, r.id DESC", params)
    items = [_record_from_row(row) for row in cursor.fetchall()]
    return {"items": items, "total": len(items)}


@router.get("/check", dependencies=[Depends(require_auth)])
async def check_record(
    user_id: Optional[str] = Query(None),
    memory_item_id: Optional[str] = Query(None),
    conn=Depends(get_db),
):
    """Tell the recorder whether the next recitation counts as first or repeat."""
    if not user_id or not memory_item_id:
        raise ValidationError("user_id and memory_item_id are required")
    info = get_record_info(conn, user_id, memory_item_id)
    return {
        "user_id": user_id,
        "memory_item_id": memory_item_id,
        "record_type": info["record_type"],
        "count": info["count"],
        "has_recorded": info["has_recorded"],
        "is_first": info["is_first"],
    }


def _reactivate_if_inactive(conn, item: dict) -> dict:
    if item["active"]:
        return item
    item = Gateway(conn).update(
        "memory_items",
        {"active": True, "updated_at": sql_now()},
        {"id": item["id"]},
    )[0]
    conn.commit()
    logger.info("Reactivated memory item %s", item["id"])
    return item


def _auto_create_verse_item(conn, reference: str) -> dict:
    validation = validate_bible_reference(reference)
    if not validation["is_valid"]:
        raise ValidationError(validation.get("error") or "Invalid verse reference format")
    db = Gateway(conn)
    normalized = validation["normalized"]
    existing = db.single("memory_items", {"reference": normalized})
    if existing:
        return _reactivate_if_inactive(conn, existing)
    version = get_config_value("bible", "auto_create_version", "NIV")
    verse = fetch_bible_verse(normalized, version)
    if not verse:
        raise NotFoundError("Memory item not found and could not fetch verse from API")
    points = calculate_default_points(normalized)
    item = db.insert(
        "memory_items",
        {
            "type": "verse",
            "reference": normalized,
            "text": verse["text"],
            "points_first": points["first"],
            "points_repeat": points["repeat"],
            "active": True,
            "bible_version": verse["version"],
        },
    )
    conn.commit()
    logger.info("Created memory item %s for %s", item["id"], normalized)
    return item


def _resolve_memory_item(conn, memory_item_id) -> dict:
    db = Gateway(conn)
    key = str(memory_item_id).strip()
    if key.isdigit():
        item = db.single("memory_items", {"id": int(key)})
        if not item:
            raise NotFoundError("Memory item not found")
        return item
    item = db.single("memory_items", {"reference": key})
    if not item:
        return _auto_create_verse_item(conn, key)
    return _reactivate_if_inactive(conn, item)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_auth)])
def create_record(body: VerseRecordCreate, conn=Depends(get_db)):
    if not Gateway(conn).single("users", {"id": body.user_id}):
        raise NotFoundError("User not found")
    item = _resolve_memory_item(conn, body.memory_item_id)
    return create_verse_record(conn, body.user_id, item, requested_type=body.record_type)


@router.get("/{record_id}")
async def get_record(record_id: int, conn=Depends(get_db)):
    cursor = conn.cursor()
    cursor.execute(f"{RECORD_SELECT} WHERE r.id = ?", (record_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFoundError("Record not found")
    return _record_from_row(row)
