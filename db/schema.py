# SQL schema for the Word Pointe database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Program settings (single row)
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    default_points_first INTEGER NOT NULL DEFAULT 10,
    default_points_repeat INTEGER NOT NULL DEFAULT 5,
    bible_version TEXT NOT NULL DEFAULT 'KJV',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Participants, leaders and admins
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    role TEXT NOT NULL DEFAULT 'student' CHECK(role IN ('admin', 'leader', 'student')),
    is_leader INTEGER NOT NULL DEFAULT 0,
    notes TEXT,
    emoji_icon TEXT,
    display_accommodation_note INTEGER NOT NULL DEFAULT 0,
    password_hash TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Login sessions
CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE
);

-- Verses and custom passages that can be recited
CREATE TABLE IF NOT EXISTS memory_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL DEFAULT 'verse' CHECK(type IN ('verse', 'custom')),
    reference TEXT NOT NULL UNIQUE,
    text TEXT,
    points_first INTEGER NOT NULL,
    points_repeat INTEGER NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    bible_version TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Ledger: memory work
CREATE TABLE IF NOT EXISTS verse_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    memory_item_id INTEGER NOT NULL,
    record_type TEXT NOT NULL CHECK(record_type IN ('first', 'repeat')),
    occurrence INTEGER NOT NULL,
    points_awarded INTEGER NOT NULL,
    applied_multiplier REAL NOT NULL DEFAULT 1.0,
    applied_promo TEXT,
    recorded_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (user_id, memory_item_id, occurrence),
    FOREIGN KEY (user_id) REFERENCES users (id),
    FOREIGN KEY (memory_item_id) REFERENCES memory_items (id)
);

-- Ledger: redemptions
CREATE TABLE IF NOT EXISTS spend_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    points_spent INTEGER NOT NULL CHECK(points_spent > 0),
    note TEXT,
    undone INTEGER NOT NULL DEFAULT 0,
    spent_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (user_id) REFERENCES users (id)
);

-- Ledger: manual adjustments
CREATE TABLE IF NOT EXISTS bonus_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    points_awarded INTEGER NOT NULL CHECK(points_awarded != 0),
    reason TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'bonus' CHECK(category IN ('legacy', 'bonus', 'correction', 'other')),
    awarded_by TEXT,
    awarded_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (user_id) REFERENCES users (id)
);

-- Balances derived from the three ledgers; never written to
CREATE VIEW IF NOT EXISTS user_points_summary AS
SELECT
    u.id,
    u.name,
    u.role,
    u.is_leader,
    u.notes,
    u.emoji_icon,
    u.display_accommodation_note,
    COALESCE(v.points, 0) + COALESCE(b.points, 0) AS total_earned,
    COALESCE(v.points, 0) AS total_verse_points,
    COALESCE(b.points, 0) AS total_bonus,
    COALESCE(s.points, 0) AS total_spent,
    COALESCE(v.points, 0) + COALESCE(b.points, 0) - COALESCE(s.points, 0) AS current_points
FROM users u
LEFT JOIN (
    SELECT user_id, SUM(points_awarded) AS points FROM verse_records GROUP BY user_id
) v ON v.user_id = u.id
LEFT JOIN (
    SELECT user_id, SUM(points_awarded) AS points FROM bonus_records GROUP BY user_id
) b ON b.user_id = u.id
LEFT JOIN (
    SELECT user_id, SUM(points_spent) AS points FROM spend_records WHERE undone = 0 GROUP BY user_id
) s ON s.user_id = u.id;
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions (user_id);
CREATE INDEX IF NOT EXISTS idx_memory_items_active ON memory_items (active);
CREATE INDEX IF NOT EXISTS idx_verse_records_user_item ON verse_records (user_id, memory_item_id);
CREATE INDEX IF NOT EXISTS idx_verse_records_recorded ON verse_records (recorded_at);
CREATE INDEX IF NOT EXISTS idx_spend_records_user ON spend_records (user_id, undone);
CREATE INDEX IF NOT EXISTS idx_spend_records_spent ON spend_records (spent_at);
CREATE INDEX IF NOT EXISTS idx_bonus_records_user ON bonus_records (user_id);
CREATE INDEX IF NOT EXISTS idx_bonus_records_awarded ON bonus_records (awarded_at);
"""

SETTINGS_DEFAULTS = {
    "default_points_first": 10,
    "default_points_repeat": 5,
    "bible_version": "KJV",
}

# Columns callers may filter, order, insert or update through the gateway
TABLE_COLUMNS = {
    "settings": (
        "id", "default_points_first", "default_points_repeat", "bible_version", "created_at",
    ),
    "users": (
        "id", "name", "role", "is_leader", "notes", "emoji_icon",
        "display_accommodation_note", "password_hash", "created_at", "updated_at",
    ),
    "sessions": ("token", "user_id", "expires_at", "created_at"),
    "memory_items": (
        "id", "type", "reference", "text", "points_first", "points_repeat",
        "active", "bible_version", "created_at", "updated_at",
    ),
    "verse_records": (
        "id", "user_id", "memory_item_id", "record_type", "occurrence", "points_awarded",
        "applied_multiplier", "applied_promo", "recorded_at",
    ),
    "spend_records": ("id", "user_id", "points_spent", "note", "undone", "spent_at"),
    "bonus_records": (
        "id", "user_id", "points_awarded", "reason", "category", "awarded_by", "awarded_at",
    ),
    "user_points_summary": (
        "id", "name", "role", "is_leader", "notes", "emoji_icon", "display_accommodation_note",
        "total_earned", "total_verse_points", "total_bonus", "total_spent", "current_points",
    ),
}

READ_ONLY_TABLES = {"user_points_summary"}
