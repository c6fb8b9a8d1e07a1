"""SQLite database connection management for the product catalog."""
import os
import sqlite3
from flask import current_app, g


def get_db_path() -> str:
    """Get the path to the SQLite database file."""
    data_dir = current_app.config.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data'))
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, 'pricing.sqlite')


def get_db() -> sqlite3.Connection:
    """Get a database connection, creating one if needed for this request."""
    if 'db' not in g:
        g.db = sqlite3.connect(get_db_path())
        g.db.row_factory = sqlite3.Row
    return g.db


def close_db(e=None):
    """Close the database connection at end of request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db():
    """Initialize the database with schema."""
    db = get_db()
    db.executescript(get_schema())
    db.commit()


def get_schema() -> str:
    """Return the database schema SQL."""
    return '''
-- Metal types (admin-managed; read-only to the pricing engine)
-- price_modifier: percent; when > 0 it is the authoritative purity x multiplier
-- purity_factor / type_multiplier: optional explicit overrides
CREATE TABLE IF NOT EXISTS metal_types (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    price_modifier REAL NOT NULL DEFAULT 0 CHECK (price_modifier >= 0),
    purity_factor REAL CHECK (purity_factor IS NULL OR (purity_factor > 0 AND purity_factor <= 1)),
    type_multiplier REAL CHECK (type_multiplier IS NULL OR type_multiplier >= 1),
    display_order INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    color TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_metal_types_name ON metal_types(name COLLATE NOCASE);

-- Stone types (INR per carat)
CREATE TABLE IF NOT EXISTS stone_types (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    price_per_carat REAL NOT NULL DEFAULT 0 CHECK (price_per_carat >= 0),
    category TEXT,
    quality TEXT,
    size TEXT,
    display_order INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    color TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_stone_types_name ON stone_types(name COLLATE NOCASE);

-- Metadata table for tracking import/update status
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
'''


def init_app(app):
    """Register database functions with Flask app and ensure database exists."""
    app.teardown_appcontext(close_db)

    # Ensure database schema is initialized on app startup
    with app.app_context():
        # CREATE IF NOT EXISTS handles idempotency
        db = get_db()
        db.executescript(get_schema())
        db.commit()
