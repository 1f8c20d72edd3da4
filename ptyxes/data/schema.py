"""
Database schema for the Ptyxes store.

Six tables: users, meal_posts, ingredients, meal_ingredients, upvotes,
comments. Column names keep the camelCase used by existing database files.
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)


USERS_TABLE = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        userName TEXT UNIQUE NOT NULL,
        password TEXT NOT NULL,
        email TEXT,
        role INTEGER NOT NULL DEFAULT 0,
        reputation INTEGER NOT NULL DEFAULT 0,
        uuid TEXT UNIQUE NOT NULL,
        creationDate TEXT NOT NULL
    )
"""

MEAL_POSTS_TABLE = """
    CREATE TABLE IF NOT EXISTS meal_posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        userId INTEGER NOT NULL,
        description TEXT,
        instructions TEXT,
        preparationTime INTEGER NOT NULL DEFAULT 0,
        cookingTime INTEGER NOT NULL DEFAULT 0,
        servings INTEGER,
        difficulty TEXT,
        dietaryType TEXT,
        imageUrl TEXT,
        creationDate TEXT NOT NULL,
        lastModified TEXT NOT NULL,
        upvotes INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (userId) REFERENCES users(id)
    )
"""

# UNIQUE(name) makes get-or-create a single atomic statement
INGREDIENTS_TABLE = """
    CREATE TABLE IF NOT EXISTS ingredients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        category TEXT
    )
"""

MEAL_INGREDIENTS_TABLE = """
    CREATE TABLE IF NOT EXISTS meal_ingredients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        mealId INTEGER NOT NULL,
        ingredientId INTEGER NOT NULL,
        quantity REAL,
        unit TEXT,
        FOREIGN KEY (mealId) REFERENCES meal_posts(id) ON DELETE CASCADE,
        FOREIGN KEY (ingredientId) REFERENCES ingredients(id)
    )
"""

UPVOTES_TABLE = """
    CREATE TABLE IF NOT EXISTS upvotes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        userId INTEGER NOT NULL,
        mealId INTEGER NOT NULL,
        upvoteDate TEXT NOT NULL,
        FOREIGN KEY (userId) REFERENCES users(id),
        FOREIGN KEY (mealId) REFERENCES meal_posts(id) ON DELETE CASCADE,
        UNIQUE (userId, mealId)
    )
"""

COMMENTS_TABLE = """
    CREATE TABLE IF NOT EXISTS comments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        userId INTEGER NOT NULL,
        mealId INTEGER NOT NULL,
        content TEXT NOT NULL,
        creationDate TEXT NOT NULL,
        FOREIGN KEY (userId) REFERENCES users(id),
        FOREIGN KEY (mealId) REFERENCES meal_posts(id) ON DELETE CASCADE
    )
"""

# Parents before children
TABLES = [
    ("users", USERS_TABLE),
    ("meal_posts", MEAL_POSTS_TABLE),
    ("ingredients", INGREDIENTS_TABLE),
    ("meal_ingredients", MEAL_INGREDIENTS_TABLE),
    ("upvotes", UPVOTES_TABLE),
    ("comments", COMMENTS_TABLE),
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_meal_posts_user ON meal_posts(userId)",
    "CREATE INDEX IF NOT EXISTS idx_meal_posts_created ON meal_posts(creationDate)",
    "CREATE INDEX IF NOT EXISTS idx_meal_ingredients_meal ON meal_ingredients(mealId)",
    "CREATE INDEX IF NOT EXISTS idx_meal_ingredients_ingredient ON meal_ingredients(ingredientId)",
    "CREATE INDEX IF NOT EXISTS idx_upvotes_meal ON upvotes(mealId)",
    "CREATE INDEX IF NOT EXISTS idx_comments_meal ON comments(mealId)",
    "CREATE INDEX IF NOT EXISTS idx_comments_user ON comments(userId)",
]


def ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Create every table and index that does not exist yet.

    Safe to run on every connect.

    Args:
        conn: Open connection (autocommit mode)
    """
    cursor = conn.cursor()
    for _, ddl in TABLES:
        cursor.execute(ddl)
    for ddl in INDEXES:
        cursor.execute(ddl)
    logger.debug(f"Schema ensured ({len(TABLES)} tables)")


def drop_schema(conn: sqlite3.Connection) -> None:
    """Drop all tables, children first."""
    cursor = conn.cursor()
    for name, _ in reversed(TABLES):
        cursor.execute(f"DROP TABLE IF EXISTS {name}")
    logger.warning("All tables dropped")


def table_names(conn: sqlite3.Connection) -> list:
    """Names of the user tables currently present."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [row[0] for row in cursor.fetchall()]
