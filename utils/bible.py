from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from config import get_config_value

logger = logging.getLogger(__name__)

# (canonical name, API.Bible book code, accepted abbreviations)
BIBLE_BOOKS: List[Tuple[str, str, Tuple[str, ...]]] = [
    ("Genesis", "GEN", ("Gen", "Ge", "Gn")),
    ("Exodus", "EXO", ("Exo", "Ex", "Exod")),
    ("Leviticus", "LEV", ("Lev", "Le", "Lv")),
    ("Numbers", "NUM", ("Num", "Nu", "Nm", "Nb")),
    ("Deuteronomy", "DEU", ("Deut", "Dt")),
    ("Joshua", "JOS", ("Josh", "Jos", "Jsh")),
    ("Judges", "JDG", ("Judg", "Jdg", "Jg", "Jdgs")),
    ("Ruth", "RUT", ("Rth", "Ru")),
    ("1 Samuel", "1SA", ("1 Sam", "1 Sa", "1Samuel", "1S")),
    ("2 Samuel", "2SA", ("2 Sam", "2 Sa", "2Samuel", "2S")),
    ("1 Kings", "1KI", ("1 Kgs", "1 Ki", "1K")),
    ("2 Kings", "2KI", ("2 Kgs", "2 Ki", "2K")),
    ("1 Chronicles", "1CH", ("1 Chron", "1 Chr", "1Ch")),
    ("2 Chronicles", "2CH", ("2 Chron", "2 Chr", "2Ch")),
    ("Ezra", "EZR", ("Ezr",)),
    ("Nehemiah", "NEH", ("Neh", "Ne")),
    ("Esther", "EST", ("Esth", "Es")),
    ("Job", "JOB", ("Jb",)),
    ("Psalm", "PSA", ("Ps", "Psalms", "Pslm", "Psa", "Psm", "Pss")),
    ("Proverbs", "PRO", ("Prov", "Pro", "Prv", "Pr")),
    ("Ecclesiastes", "ECC", ("Eccles", "Eccl", "Ec", "Qoh")),
    ("Song of Solomon", "SNG", ("Song", "Song of Songs", "SOS", "SS", "SongOfSongs")),
    ("Isaiah", "ISA", ("Isa", "Is")),
    ("Jeremiah", "JER", ("Jer", "Je", "Jr")),
    ("Lamentations", "LAM", ("Lam", "La")),
    ("Ezekiel", "EZK", ("Ezek", "Eze", "Ezk")),
    ("Daniel", "DAN", ("Dan", "Da", "Dn")),
    ("Hosea", "HOS", ("Hos", "Ho")),
    ("Joel", "JOL", ("Joe", "Jl")),
    ("Amos", "AMO", ("Am",)),
    ("Obadiah", "OBA", ("Obad", "Ob")),
    ("Jonah", "JON", ("Jnh", "Jon")),
    ("Micah", "MIC", ("Mic", "Mc")),
    ("Nahum", "NAM", ("Nah", "Na")),
    ("Habakkuk", "HAB", ("Hab", "Hb")),
    ("Zephaniah", "ZEP", ("Zeph", "Zep", "Zp")),
    ("Haggai", "HAG", ("Hag", "Hg")),
    ("Zechariah", "ZEC", ("Zech", "Zec", "Zc")),
    ("Malachi", "MAL", ("Mal", "Ml")),
    ("Matthew", "MAT", ("Matt", "Mt")),
    ("Mark", "MRK", ("Mrk", "Mk", "Mr")),
    ("Luke", "LUK", ("Luk", "Lk")),
    ("John", "JHN", ("Jhn", "Jn")),
    ("Acts", "ACT", ("Act", "Ac")),
    ("Romans", "ROM", ("Rom", "Ro", "Rm")),
    ("1 Corinthians", "1CO", ("1 Cor", "1 Co", "1Cor", "1Corinthians")),
    ("2 Corinthians", "2CO", ("2 Cor", "2 Co", "2Cor", "2Corinthians")),
    ("Galatians", "GAL", ("Gal", "Ga")),
    ("Ephesians", "EPH", ("Eph", "Ephes")),
    ("Philippians", "PHP", ("Phil", "Php", "Pp")),
    ("Colossians", "COL", ("Col",)),
    ("1 Thessalonians", "1TH", ("1 Thess", "1 Th", "1Thess", "1Thessalonians")),
    ("2 Thessalonians", "2TH", ("2 Thess", "2 Th", "2Thess", "2Thessalonians")),
    ("1 Timothy", "1TI", ("1 Tim", "1 Ti", "1Tim", "1Timothy")),
    ("2 Timothy", "2TI", ("2 Tim", "2 Ti", "2Tim", "2Timothy")),
    ("Titus", "TIT", ("Tit",)),
    ("Philemon", "PHM", ("Phlm", "Phm")),
    ("Hebrews", "HEB", ("Heb", "He")),
    ("James", "JAS", ("Jas", "Jm")),
    ("1 Peter", "1PE", ("1 Pet", "1 Pe", "1Pet", "1P", "1Peter")),
    ("2 Peter", "2PE", ("2 Pet", "2 Pe", "2Pet", "2P", "2Peter")),
    ("1 John", "1JN", ("1 Jhn", "1 Jn", "1John", "1J")),
    ("2 John", "2JN", ("2 Jhn", "2 Jn", "2John", "2J")),
    ("3 John", "3JN", ("3 Jhn", "3 Jn", "3John", "3J")),
    ("Jude", "JUD", ("Jud", "Jd")),
    ("Revelation", "REV", ("Rev", "Re", "The Revelation")),
]

# API.Bible ids; NIV/ESV/NLT need publisher permission on the key
BIBLE_VERSION_IDS = {
    "KJV": "de4e12af7f28f599-02",
    "NIV": "06125adad2d5898a-01",
    "ESV": "f421fe261da7624f-01",
    "NLT": "01b29f4b342acc35-01",
}

_REFERENCE_RE = re.compile(r"^([1-3]?\s?[A-Za-z\s]+)\s+(\d+):(\d+)$")
_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")
_BOOK_LOOKUP: Dict[str, Tuple[str, str]] = {}
for _name, _code, _abbrevs in BIBLE_BOOKS:
    for _alias in (_name, *_abbrevs):
        _BOOK_LOOKUP.setdefault(_alias.lower(), (_name, _code))

MAX_CACHE_ENTRIES = 500
_VERSE_CACHE: Dict[str, Dict[str, Any]] = {}
_CACHE_LOCK = threading.Lock()


def find_book(book: str) -> Optional[Tuple[str, str]]:
    """Return (canonical name, book code) for a book name or abbreviation."""
    return _BOOK_LOOKUP.get(_SPACE_RE.sub(" ", book.strip()).lower())


def validate_bible_reference(reference: str) -> Dict[str, Any]:
    """Check a single-verse reference like "John 3:16".

    Only the format and book name are checked, not whether the chapter or
    verse exists.
    """
    match = _REFERENCE_RE.match((reference or "").strip())
    if not match:
        return {"is_valid": False, "error": 'Format should be like "John 3:16"'}
    book_input = match.group(1).strip()
    book = find_book(book_input)
    if not book:
        return {"is_valid": False, "error": f'"{book_input}" is not a recognized Bible book'}
    canonical = book[0]
    return {
        "is_valid": True,
        "canonical_book": canonical,
        "normalized": f"{canonical} {int(match.group(2))}:{int(match.group(3))}",
    }


def parse_reference(reference: str) -> Optional[Dict[str, Any]]:
    match = _REFERENCE_RE.match((reference or "").strip())
    if not match:
        return None
    book = find_book(match.group(1))
    if not book:
        return None
    return {
        "book": book[0],
        "code": book[1],
        "chapter": int(match.group(2)),
        "verse": int(match.group(3)),
    }


def is_valid_reference(reference: str) -> bool:
    return parse_reference(reference) is not None


def get_book_suggestions(text: str, limit: int = 10) -> List[str]:
    """Canonical book names whose name or abbreviation starts with the input."""
    if not text or len(text.strip()) < 2:
        return []
    prefix = text.strip().lower()
    suggestions = []
    for name, _code, abbrevs in BIBLE_BOOKS:
        if name.lower().startswith(prefix) or any(a.lower().startswith(prefix) for a in abbrevs):
            suggestions.append(name)
    return suggestions[:limit]


def _build_client() -> httpx.Client:
    return httpx.Client(timeout=float(get_config_value("bible", "timeout", 10)))


def _fetch_from_bible_api(client: httpx.Client, reference: str) -> Optional[Dict[str, Any]]:
    """bible-api.com: free, no key, served here as KJV only."""
    base_url = get_config_value("bible", "fallback_url", "https://bible-api.com").rstrip("/")
    try:
        response = client.get(f"{base_url}/{quote(reference)}", params={"translation": "kjv"})
        if response.status_code != 200:
            return None
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("bible-api.com lookup failed for %s: %s", reference, exc)
        return None
    text = (data or {}).get("text")
    if not text or not text.strip():
        return None
    return {
        "reference": data.get("reference") or reference,
        "text": _SPACE_RE.sub(" ", text).strip(),
        "version": "KJV",
        "copyright": "King James Version (Public Domain)",
    }


def _fetch_from_api_bible(client: httpx.Client, reference: str, version: str) -> Optional[Dict[str, Any]]:
    """API.Bible lookup; any failure falls through to bible-api.com."""
    api_key = get_config_value("bible", "api_key", "")
    if not api_key:
        return _fetch_from_bible_api(client, reference)
    parsed = parse_reference(reference)
    if not parsed:
        return None
    bible_id = BIBLE_VERSION_IDS.get(version.upper(), BIBLE_VERSION_IDS["KJV"])
    verse_id = f"{parsed['code']}.{parsed['chapter']}.{parsed['verse']}"
    base_url = get_config_value("bible", "api_url", "https://api.scripture.api.bible/v1").rstrip("/")
    try:
        response = client.get(
            f"{base_url}/bibles/{bible_id}/verses/{verse_id}",
            headers={"api-key": api_key},
        )
        if response.status_code != 200:
            logger.info("API.Bible returned %s for %s, using fallback", response.status_code, reference)
            return _fetch_from_bible_api(client, reference)
        data = response.json().get("data") or {}
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("API.Bible lookup failed for %s: %s", reference, exc)
        return _fetch_from_bible_api(client, reference)
    text = _SPACE_RE.sub(" ", _TAG_RE.sub("", data.get("content") or "")).strip()
    if not text:
        return _fetch_from_bible_api(client, reference)
    return {
        "reference": data.get("reference") or reference,
        "text": text,
        "version": version.upper(),
        "copyright": data.get("copyright"),
    }


def _store_verse(cache_key: str, verse: Dict[str, Any]) -> None:
    with _CACHE_LOCK:
        _VERSE_CACHE[cache_key] = {"verse": dict(verse), "timestamp": time.time()}
        overflow = len(_VERSE_CACHE) - MAX_CACHE_ENTRIES
        if overflow > 0:
            oldest = sorted(_VERSE_CACHE, key=lambda key: _VERSE_CACHE[key]["timestamp"])[:overflow]
            for key in oldest:
                del _VERSE_CACHE[key]


def fetch_bible_verse(reference: str, version: str = "KJV") -> Optional[Dict[str, Any]]:
    """Fetch a verse, serving repeats from the in-process cache until they expire."""
    cache_key = f"{reference}-{version}"
    max_age = int(get_config_value("bible", "cache_days", 7)) * 24 * 60 * 60
    with _CACHE_LOCK:
        cached = _VERSE_CACHE.get(cache_key)
        if cached and time.time() - cached["timestamp"] >= max_age:
            del _VERSE_CACHE[cache_key]
            cached = None
    if cached:
        return dict(cached["verse"])
    with _build_client() as client:
        verse = _fetch_from_api_bible(client, reference, version)
    if verse:
        _store_verse(cache_key, verse)
    return verse


def fetch_bible_verses(references: List[str], version: str = "KJV") -> Dict[str, Dict[str, Any]]:
    """Fetch several verses in chunks of five, pausing between chunks."""
    results: Dict[str, Dict[str, Any]] = {}
    chunks = [references[i:i + 5] for i in range(0, len(references), 5)]
    for index, chunk in enumerate(chunks):
        for reference in chunk:
            verse = fetch_bible_verse(reference, version)
            if verse:
                results[reference] = verse
        if index < len(chunks) - 1:
            time.sleep(0.1)
    return results


def clear_verse_cache() -> None:
    with _CACHE_LOCK:
        _VERSE_CACHE.clear()
