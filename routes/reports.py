import csv
import io
import re
from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from db import Gateway
from db.database import get_db
from utils.auth import require_auth
from utils.errors import NotFoundError

router = APIRouter(dependencies=[Depends(require_auth)])

USERS_CSV_HEADER = [
    "Name",
    "Role",
    "Current Points",
    "Memory Work Points",
    "Bonus/Adjustment Points",
    "Total Spent",
]
HISTORY_CSV_HEADER = [
    "Date",
    "Time",
    "Type",
    "Item",
    "Reference",
    "Record Type",
    "Points Change",
    "Description",
]
BONUS_ITEM_LABELS = {"legacy": "Legacy Points", "correction": "Correction"}


def _csv_response(data: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(data.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _split_timestamp(value: str) -> tuple[str, str]:
    day, _, time_part = (value or "").partition(" ")
    return day, time_part


def _signed(points: int) -> str:
    return f"+{points}" if points > 0 else str(points)


@router.get("/users-csv")
async def users_csv(conn=Depends(get_db)):
    """Every user's balance breakdown, highest current points first."""
    users = Gateway(conn).select("user_points_summary", order_by="current_points", descending=True)
    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(USERS_CSV_HEADER)
    for user in users:
        # Name is always quoted; role and numbers stay bare
        fields = [
            '"' + (user["name"] or "").replace('"', '""') + '"',
            "Leader" if user["is_leader"] else "Student",
            *(
                str(int(user[key] or 0))
                for key in ("current_points", "total_verse_points", "total_bonus", "total_spent")
            ),
        ]
        output.write(",".join(fields) + "\n")
    filename = f"word-pointe-points-{date.today().isoformat()}.csv"
    return _csv_response(output.getvalue(), filename)


def _history_rows(conn, user_id: int) -> list[dict]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT r.recorded_at, r.record_type, r.points_awarded, m.reference
        FROM verse_records r
        JOIN memory_items m ON m.id = r.memory_item_id
        WHERE r.user_id = ?
        """,
        (user_id,),
    )
    rows = []
    for row in cursor.fetchall():
        label = "First time" if row["record_type"] == "first" else "Repeat"
        rows.append(
            {
                "at": row["recorded_at"],
                "type": "Memory Work",
                "item": row["reference"] or "Unknown Item",
                "reference": row["reference"] or "",
                "record_type": row["record_type"],
                "change": f"+{row['points_awarded']}",
                "description": f"{label} - {row['reference'] or 'Unknown'}",
            }
        )
    db = Gateway(conn)
    for spend in db.select("spend_records", {"user_id": user_id}):
        rows.append(
            {
                "at": spend["spent_at"],
                "type": "Spend (Undone)" if spend["undone"] else "Spend",
                "item": "Points Spent",
                "reference": "",
                "record_type": "",
                # Undone spends no longer reduce the balance
                "change": str(spend["points_spent"]) if spend["undone"] else f"-{spend['points_spent']}",
                "description": spend["note"] or "Points spent",
            }
        )
    for bonus in db.select("bonus_records", {"user_id": user_id}):
        rows.append(
            {
                "at": bonus["awarded_at"],
                "type": f"Bonus ({bonus['category']})",
                "item": BONUS_ITEM_LABELS.get(bonus["category"], "Bonus"),
                "reference": "",
                "record_type": "",
                "change": _signed(bonus["points_awarded"]),
                "description": bonus["reason"],
            }
        )
    rows.sort(key=lambda entry: entry["at"] or "", reverse=True)
    return rows


@router.get("/user-history-csv/{user_id}")
async def user_history_csv(user_id: int, conn=Depends(get_db)):
    """One user's full ledger, newest entry first."""
    user = Gateway(conn).single("users", {"id": user_id})
    if not user:
        raise NotFoundError("User not found")
    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(HISTORY_CSV_HEADER)
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for entry in _history_rows(conn, user_id):
        day, time_part = _split_timestamp(entry["at"])
        writer.writerow(
            [
                day,
                time_part,
                entry["type"],
                entry["item"],
                entry["reference"],
                entry["record_type"],
                entry["change"],
                entry["description"],
            ]
        )
    safe_name = re.sub(r"[^a-zA-Z0-9]", "-", user["name"])
    filename = f"word-pointe-{safe_name}-history-{date.today().isoformat()}.csv"
    return _csv_response(output.getvalue(), filename)
