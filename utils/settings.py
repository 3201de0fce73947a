from db import Gateway
from db.schema import SETTINGS_DEFAULTS

SETTINGS_ID = 1

def get_or_create_settings(conn) -> dict:
    """Return the settings row, creating it with defaults if it does not exist yet.

    The CHECK (id = 1) constraint plus INSERT OR IGNORE keeps concurrent first
    reads from producing a second row.
    """
    db = Gateway(conn)
    row = db.single("settings", {"id": SETTINGS_ID})
    if row:
        return row
    conn.execute(
        """
        INSERT OR IGNORE INTO settings (id, default_points_first, default_points_repeat, bible_version)
        VALUES (?, ?, ?, ?)
        """,
        (
            SETTINGS_ID,
            SETTINGS_DEFAULTS["default_points_first"],
            SETTINGS_DEFAULTS["default_points_repeat"],
            SETTINGS_DEFAULTS["bible_version"],
        ),
    )
    conn.commit()
    return db.single("settings", {"id": SETTINGS_ID})

def update_settings(conn, changes: dict) -> dict:
    """Merge changes into the settings row, creating it from changes plus defaults if absent."""
    db = Gateway(conn)
    existing = db.single("settings", {"id": SETTINGS_ID})
    if existing:
        if not changes:
            return existing
        row = db.update("settings", changes, {"id": SETTINGS_ID})[0]
    else:
        row = db.insert("settings", {"id": SETTINGS_ID, **SETTINGS_DEFAULTS, **changes})
    conn.commit()
    return row

def get_setting(conn, key: str):
    return get_or_create_settings(conn).get(key, SETTINGS_DEFAULTS.get(key))
