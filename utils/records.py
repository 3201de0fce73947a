from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from db import Gateway
from utils.errors import DuplicateError, InternalError
from utils.points import compute_points

logger = logging.getLogger(__name__)


def get_user_record_count(conn, user_id, memory_item_id) -> int:
    """How many times the user has recited this memory item."""
    return Gateway(conn).count(
        "verse_records",
        {"user_id": user_id, "memory_item_id": memory_item_id},
    )


def has_user_recorded_item(conn, user_id, memory_item_id) -> bool:
    return get_user_record_count(conn, user_id, memory_item_id) > 0


def determine_record_type(conn, user_id, memory_item_id) -> str:
    return "repeat" if has_user_recorded_item(conn, user_id, memory_item_id) else "first"


def get_record_info(conn, user_id, memory_item_id) -> dict:
    """Whether the next record for this user/item pair is a first or a repeat.

    Unknown items are not validated here; they simply have no records.
    """
    count = get_user_record_count(conn, user_id, memory_item_id)
    return {
        "record_type": "first" if count == 0 else "repeat",
        "count": count,
        "has_recorded": count > 0,
        "is_first": count == 0,
    }


def create_verse_record(
    conn,
    user_id: int,
    memory_item: dict,
    requested_type: Optional[str] = None,
    multiplier: float = 1.0,
    promo: Optional[str] = None,
) -> dict:
    """Award points for a recitation, re-counting prior records inside the write transaction.

    The (user_id, memory_item_id, occurrence) unique constraint rejects a second
    writer that counted the same history.
    """
    db = Gateway(conn)
    if not conn.in_transaction:
        conn.execute("BEGIN IMMEDIATE")
    try:
        count = db.count(
            "verse_records",
            {"user_id": user_id, "memory_item_id": memory_item["id"]},
        )
        if requested_type == "first" and count > 0:
            raise DuplicateError("First record already exists for this user and item")
        record_type = requested_type or determine_record_type(conn, user_id, memory_item["id"])
        points = compute_points(memory_item, record_type, multiplier=multiplier, promo=promo)
        record = db.insert(
            "verse_records",
            {
                "user_id": user_id,
                "memory_item_id": memory_item["id"],
                "record_type": record_type,
                "occurrence": count + 1,
                **points,
            },
        )
        conn.commit()
    except sqlite3.IntegrityError as exc:
        conn.rollback()
        logger.warning("Concurrent record for user %s item %s: %s", user_id, memory_item["id"], exc)
        raise DuplicateError("This recitation was already recorded") from exc
    except sqlite3.Error as exc:
        conn.rollback()
        logger.exception("Failed to record item %s for user %s", memory_item["id"], user_id)
        raise InternalError("Failed to create record") from exc
    except Exception:
        conn.rollback()
        raise
    return record
