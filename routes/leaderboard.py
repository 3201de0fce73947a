from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query

from db.database import get_db

router = APIRouter()


def _month_start() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-01 00:00:00")


def _all_time(conn) -> list[dict]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT
            s.id AS user_id,
            s.name AS username,
            s.is_leader,
            s.emoji_icon,
            s.total_earned AS total_points,
            s.current_points,
            (SELECT COUNT(*) FROM verse_records r WHERE r.user_id = s.id) AS verse_count
        FROM user_points_summary s
        WHERE s.total_earned > 0
        ORDER BY s.total_earned DESC, s.id
        """
    )
    return [dict(row, is_leader=bool(row["is_leader"])) for row in cursor.fetchall()]


def _this_month(conn) -> list[dict]:
    # Bonus points only count for users who also recited this month
    start = _month_start()
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT
            u.id AS user_id,
            u.name AS username,
            u.is_leader,
            u.emoji_icon,
            v.verse_count,
            v.points + COALESCE(b.points, 0) AS total_points,
            0 AS current_points
        FROM users u
        JOIN (
            SELECT user_id, COUNT(*) AS verse_count, SUM(points_awarded) AS points
            FROM verse_records
            WHERE recorded_at >= ?
            GROUP BY user_id
        ) v ON v.user_id = u.id
        LEFT JOIN (
            SELECT user_id, SUM(points_awarded) AS points
            FROM bonus_records
            WHERE awarded_at >= ?
            GROUP BY user_id
        ) b ON b.user_id = u.id
        ORDER BY total_points DESC, v.verse_count DESC, u.id
        """,
        (start, start),
    )
    return [dict(row, is_leader=bool(row["is_leader"])) for row in cursor.fetchall()]


@router.get("")
async def leaderboard(
    view: Literal["all-time", "month"] = Query("all-time"),
    conn=Depends(get_db),
):
    items = _this_month(conn) if view == "month" else _all_time(conn)
    return {"items": items}
