"""Database schema definitions"""

# Users table (session store)
USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    username TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    totp_secret TEXT NOT NULL,
    user_status TEXT NOT NULL DEFAULT 'init',  -- 'init' or 'verified'
    session_token TEXT,                        -- single currently valid token
    ban_ip TEXT,
    banned_until INTEGER,                      -- epoch milliseconds
    created_at DATETIME NOT NULL
)
"""

# Tabs table
TABS_TABLE = """
CREATE TABLE IF NOT EXISTS tabs (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    "group" TEXT NOT NULL DEFAULT 'default',
    status TEXT NOT NULL DEFAULT 'active',     -- 'active' or 'closed'
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""

# Shortcuts table
SHORTCUTS_TABLE = """
CREATE TABLE IF NOT EXISTS shortcuts (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL
)
"""

# History table
HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS history (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    timestamp DATETIME NOT NULL
)
"""

# Bookmarks table
BOOKMARKS_TABLE = """
CREATE TABLE IF NOT EXISTS bookmarks (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    timestamp DATETIME NOT NULL
)
"""

# Notes table
NOTES_TABLE = """
CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp DATETIME NOT NULL
)
"""

ALL_TABLES = [
    USERS_TABLE,
    TABS_TABLE,
    SHORTCUTS_TABLE,
    HISTORY_TABLE,
    BOOKMARKS_TABLE,
    NOTES_TABLE,
]

# Every resource collection is looked up by owner
INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_users_session_token ON users(session_token)",
    "CREATE INDEX IF NOT EXISTS idx_users_status ON users(user_status)",
    "CREATE INDEX IF NOT EXISTS idx_tabs_username_status ON tabs(username, status)",
    "CREATE INDEX IF NOT EXISTS idx_shortcuts_username ON shortcuts(username)",
    "CREATE INDEX IF NOT EXISTS idx_history_username ON history(username)",
    "CREATE INDEX IF NOT EXISTS idx_bookmarks_username ON bookmarks(username)",
    "CREATE INDEX IF NOT EXISTS idx_notes_username ON notes(username)",
]
