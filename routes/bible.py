from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from db.database import get_db
from utils.bible import (
    fetch_bible_verse,
    fetch_bible_verses,
    get_book_suggestions,
    is_valid_reference,
    validate_bible_reference,
)
from utils.errors import NotFoundError, ValidationError
from utils.settings import get_setting

router = APIRouter()

MAX_BATCH_REFERENCES = 50


def _resolve_version(conn, version: Optional[str]) -> str:
    return (version or get_setting(conn, "bible_version") or "KJV").upper()


@router.get("/books")
async def bible_books(q: Optional[str] = None, limit: int = Query(10, ge=1, le=66)):
    """Book names matching a typed prefix, for reference autocomplete."""
    return {"books": get_book_suggestions(q or "", limit=limit)}


@router.get("/verse")
def bible_verse(
    reference: Optional[str] = Query(None),
    version: Optional[str] = Query(None),
    conn=Depends(get_db),
):
    """Look up verse text; the version defaults to the program setting."""
    if not reference or not reference.strip():
        raise ValidationError("Reference is required")
    validation = validate_bible_reference(reference)
    if not validation["is_valid"]:
        raise ValidationError(validation["error"])
    verse = fetch_bible_verse(validation["normalized"], _resolve_version(conn, version))
    if not verse:
        raise NotFoundError("Verse not found")
    return verse


@router.get("/verses")
def bible_verses(
    reference: List[str] = Query([]),
    version: Optional[str] = Query(None),
    conn=Depends(get_db),
):
    """Look up several references at once, keyed by the reference as given."""
    references = [r.strip() for r in reference if r and r.strip()]
    if not references:
        raise ValidationError("At least one reference is required")
    if len(references) > MAX_BATCH_REFERENCES:
        raise ValidationError(f"At most {MAX_BATCH_REFERENCES} references per request")
    valid = [r for r in references if is_valid_reference(r)]
    invalid = [r for r in references if r not in valid]
    verses = fetch_bible_verses(valid, _resolve_version(conn, version)) if valid else {}
    return {
        "verses": verses,
        "invalid": invalid,
        "not_found": [r for r in valid if r not in verses],
    }
