"""
Database schema for codecoach.

Four tables: versioned app projects (JSON blob per version), per-project
challenge state, chat history, and linked GitHub accounts.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from codecoach.observability.logging import get_logger

logger = get_logger(__name__)


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Args:
        db_path: Path to the database file

    Side Effects:
    - Creates the parent directory if needed
    - Creates tables and indexes that don't exist yet
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)

    conn.executescript("""
        -- One row per project version; parent_id points at the root version
        CREATE TABLE IF NOT EXISTS app_projects (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            parent_id TEXT,
            version INTEGER NOT NULL DEFAULT 1,
            app_data TEXT NOT NULL,
            creation_prompt TEXT,
            modification_prompt TEXT,
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_app_projects_user
        ON app_projects(user_id, created_at);

        CREATE INDEX IF NOT EXISTS idx_app_projects_parent_version
        ON app_projects(parent_id, version);

        CREATE TABLE IF NOT EXISTS challenges (
            project_id TEXT NOT NULL,
            challenge_id TEXT NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            title TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            feature_name TEXT NOT NULL DEFAULT '',
            difficulty TEXT NOT NULL DEFAULT 'medium',
            type TEXT NOT NULL DEFAULT 'implementation',
            files_paths TEXT NOT NULL DEFAULT '[]',
            hints TEXT NOT NULL DEFAULT '[]',
            completed INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (project_id, challenge_id)
        );

        CREATE TABLE IF NOT EXISTS chat_messages (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            project_id TEXT,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_chat_messages_project
        ON chat_messages(project_id, created_at);

        CREATE INDEX IF NOT EXISTS idx_chat_messages_user
        ON chat_messages(user_id, created_at);

        CREATE TABLE IF NOT EXISTS github_connections (
            user_id TEXT PRIMARY KEY,
            github_id INTEGER NOT NULL,
            github_username TEXT NOT NULL,
            github_avatar TEXT,
            github_name TEXT,
            access_token TEXT NOT NULL,
            connected_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS repository_files (
            id TEXT PRIMARY KEY,
            repository_name TEXT NOT NULL,
            file_path TEXT NOT NULL,
            content TEXT,
            user_id TEXT,
            session_id TEXT,
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_repository_files_repo_path
        ON repository_files(repository_name, file_path);

        CREATE INDEX IF NOT EXISTS idx_repository_files_session
        ON repository_files(session_id);
    """)

    conn.commit()
    conn.close()

    logger.info("Database initialized: %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected schema

    Raises:
        ValueError: If tables or columns are missing
    """
    required_tables = {
        "app_projects": ["id", "user_id", "parent_id", "version", "app_data"],
        "challenges": ["project_id", "challenge_id", "completed", "hints"],
        "chat_messages": ["id", "user_id", "project_id", "role", "content"],
        "github_connections": ["user_id", "github_id", "github_username", "access_token"],
        "repository_files": ["id", "repository_name", "file_path", "content", "session_id"],
    }

    cursor = conn.cursor()

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(required_tables) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {missing_tables}")

    for table, required_cols in required_tables.items():
        # Identifiers can't be parameterized; names come from the dict above
        cursor.execute(f"PRAGMA table_info({table})")
        existing_cols = {row[1] for row in cursor.fetchall()}

        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table '{table}' missing columns: {missing_cols}")

    return True
