import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from db import Gateway

_RANGE_RE = re.compile(r"(\d+)-(\d+)")

def compute_points(
    memory_item: dict,
    record_type: str,
    multiplier: float = 1.0,
    promo: Optional[str] = None,
) -> dict:
    """Points for one recitation; the multiplier supports promotions like double-points months."""
    base = memory_item["points_first"] if record_type == "first" else memory_item["points_repeat"]
    awarded = Decimal(str(base)) * Decimal(str(multiplier))
    return {
        "points_awarded": int(awarded.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        "applied_multiplier": multiplier,
        "applied_promo": promo,
    }

def calculate_default_points(reference: str) -> dict:
    """Default first/repeat points for an auto-created verse item; ranges earn more, capped at 30."""
    base = 10
    match = _RANGE_RE.search(reference or "")
    if match:
        verse_count = int(match.group(2)) - int(match.group(1)) + 1
        if verse_count > 0:
            base = min(10 + verse_count * 2, 30)
    return {"first": base, "repeat": math.ceil(base / 2)}

def get_current_points(conn, user_id: int) -> int:
    row = Gateway(conn).single("user_points_summary", {"id": user_id})
    if not row:
        return 0
    return int(row["current_points"] or 0)

def get_point_breakdown(conn, user_id: int) -> dict:
    """Earned/bonus/spent totals recomputed from the ledgers."""
    row = Gateway(conn).single("user_points_summary", {"id": user_id})
    if not row:
        return {
            "total_verse_points": 0,
            "total_bonus": 0,
            "total_spent": 0,
            "total_earned": 0,
            "current_points": 0,
        }
    return {
        key: int(row[key] or 0)
        for key in ("total_verse_points", "total_bonus", "total_spent", "total_earned", "current_points")
    }
