"""
Repositories for projects, challenges, chat history, GitHub links and
imported repository files.

Follows the database patterns in codecoach/infrastructure/database.py:
pooled connections, db_transaction() for writes, retry_on_db_lock() on every
write path.
"""

from __future__ import annotations

import json
from typing import Any

from codecoach.config import API_LIST_LIMIT_DEFAULT
from codecoach.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter
from codecoach.projects.models import (
    AppProject,
    Challenge,
    ChatMessage,
    GitHubConnection,
    RepositoryFile,
    new_id,
    utc_now,
)

logger = get_logger(__name__)


class ProjectNotFoundError(LookupError):
    """Raised when a project id has no stored version."""

    def __init__(self, project_id: str):
        super().__init__(f"Project with ID {project_id} not found")
        self.project_id = project_id


class AppProjectRepository:
    """
    Versioned app projects.

    Version 1 is the root row. Modifications and restores insert new rows
    whose parent_id is the root id and whose version is one above the
    highest version in the chain.
    """

    @staticmethod
    @retry_on_db_lock()
    def _insert(project: AppProject) -> AppProject:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO app_projects (
                    id, user_id, parent_id, version, app_data,
                    creation_prompt, modification_prompt, created_at
                ) VALUES (
                    :id, :user_id, :parent_id, :version, :app_data,
                    :creation_prompt, :modification_prompt, :created_at
                )
                """,
                project.to_db_dict(),
            )
        counter("persistence.app_projects.insert")
        return project

    @staticmethod
    def create(
        app_data: dict[str, Any],
        user_id: str,
        creation_prompt: str | None = None,
        project_id: str | None = None,
    ) -> AppProject:
        """
        Store version 1 of a new project.

        Side Effects:
            - Inserts row into app_projects table
        """
        project = AppProject(
            id=project_id or new_id(),
            user_id=user_id,
            version=1,
            app_data=app_data,
            creation_prompt=creation_prompt,
        )
        AppProjectRepository._insert(project)
        logger.info("Created project %s for user %s", project.id, user_id)
        return project

    @staticmethod
    def create_version(
        source: AppProject,
        app_data: dict[str, Any],
        modification_prompt: str,
    ) -> AppProject:
        """
        Store a new version in ``source``'s chain.

        Side Effects:
            - Inserts row into app_projects table
        """
        root_id = source.root_id
        highest = AppProjectRepository.get_highest_version(root_id) or source.version
        project = AppProject(
            user_id=source.user_id,
            parent_id=root_id,
            version=highest + 1,
            app_data=app_data,
            modification_prompt=modification_prompt,
        )
        AppProjectRepository._insert(project)
        logger.info("Stored version %d of project %s", project.version, root_id)
        return project

    @staticmethod
    def get_by_id(project_id: str) -> AppProject | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM app_projects WHERE id = ?", (project_id,)
            ).fetchone()

        if not row:
            return None
        return AppProject.from_db_row(dict(row))

    @staticmethod
    def get_highest_version(root_id: str) -> int | None:
        """Highest version number among the root row and its children."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT MAX(version) AS version FROM app_projects WHERE id = ? OR parent_id = ?",
                (root_id, root_id),
            ).fetchone()

        return row["version"] if row and row["version"] is not None else None

    @staticmethod
    def get_latest_version(project_id: str) -> AppProject:
        """
        Newest version in the chain that ``project_id`` belongs to.

        Raises:
            ProjectNotFoundError: If ``project_id`` is unknown
        """
        project = AppProjectRepository.get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        root_id = project.root_id
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM app_projects
                WHERE id = ? OR parent_id = ?
                ORDER BY version DESC
                LIMIT 1
                """,
                (root_id, root_id),
            ).fetchone()

        return AppProject.from_db_row(dict(row)) if row else project

    @staticmethod
    def list_versions(project_id: str) -> list[AppProject]:
        """
        All versions in the chain, oldest first.

        Raises:
            ProjectNotFoundError: If ``project_id`` is unknown
        """
        project = AppProjectRepository.get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        root_id = project.root_id
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM app_projects WHERE id = ? OR parent_id = ? ORDER BY version ASC",
                (root_id, root_id),
            ).fetchall()

        return [AppProject.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_by_user(
        user_id: str, limit: int = API_LIST_LIMIT_DEFAULT, offset: int = 0
    ) -> list[AppProject]:
        """Root projects owned by ``user_id``, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM app_projects
                WHERE user_id = ? AND parent_id IS NULL
                ORDER BY created_at DESC
                LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            ).fetchall()

        return [AppProject.from_db_row(dict(row)) for row in rows]


class ChallengeRepository:
    """Per-project challenge rows; upserts are last-write-wins."""

    @staticmethod
    @retry_on_db_lock()
    def upsert_many(project_id: str, challenges: list[Challenge]) -> int:
        """
        Insert or replace challenges for a project.

        Returns:
            Number of rows written
        """
        now = utc_now().isoformat()
        rows = [
            {
                "project_id": project_id,
                "challenge_id": challenge.id,
                "position": position,
                "title": challenge.title,
                "description": challenge.description,
                "feature_name": challenge.feature_name,
                "difficulty": challenge.difficulty,
                "type": challenge.type,
                "files_paths": json.dumps(challenge.files_paths),
                "hints": json.dumps(challenge.hints),
                "completed": int(challenge.completed),
                "updated_at": now,
            }
            for position, challenge in enumerate(challenges)
        ]
        if not rows:
            return 0

        with db_transaction() as conn:
            conn.executemany(
                """
                INSERT INTO challenges (
                    project_id, challenge_id, position, title, description,
                    feature_name, difficulty, type, files_paths, hints,
                    completed, updated_at
                ) VALUES (
                    :project_id, :challenge_id, :position, :title, :description,
                    :feature_name, :difficulty, :type, :files_paths, :hints,
                    :completed, :updated_at
                )
                ON CONFLICT(project_id, challenge_id) DO UPDATE SET
                    position = excluded.position,
                    title = excluded.title,
                    description = excluded.description,
                    feature_name = excluded.feature_name,
                    difficulty = excluded.difficulty,
                    type = excluded.type,
                    files_paths = excluded.files_paths,
                    hints = excluded.hints,
                    completed = excluded.completed,
                    updated_at = excluded.updated_at
                """,
                rows,
            )

        counter("persistence.challenges.upsert", len(rows))
        logger.info("Upserted %d challenges for project %s", len(rows), project_id)
        return len(rows)

    @staticmethod
    def list_by_project(project_id: str) -> list[Challenge]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM challenges WHERE project_id = ? ORDER BY position ASC",
                (project_id,),
            ).fetchall()

        return [
            Challenge(
                id=row["challenge_id"],
                title=row["title"],
                description=row["description"],
                feature_name=row["feature_name"],
                difficulty=row["difficulty"],
                type=row["type"],
                files_paths=json.loads(row["files_paths"]),
                hints=json.loads(row["hints"]),
                completed=bool(row["completed"]),
            )
            for row in rows
        ]

    @staticmethod
    @retry_on_db_lock()
    def set_completed(project_id: str, challenge_id: str, completed: bool = True) -> bool:
        """
        Flip a challenge's completed flag.

        Returns:
            True if a row was updated
        """
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE challenges SET completed = ?, updated_at = ?
                WHERE project_id = ? AND challenge_id = ?
                """,
                (int(completed), utc_now().isoformat(), project_id, challenge_id),
            )
            updated = cursor.rowcount > 0

        if updated:
            counter("persistence.challenges.completed")
        return updated


class ChatHistoryRepository:
    @staticmethod
    @retry_on_db_lock()
    def append(message: ChatMessage) -> ChatMessage:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO chat_messages (id, user_id, project_id, role, content, created_at)
                VALUES (:id, :user_id, :project_id, :role, :content, :created_at)
                """,
                message.to_db_dict(),
            )
        counter("persistence.chat_messages.insert")
        return message

    @staticmethod
    def list_by_project(project_id: str, limit: int = API_LIST_LIMIT_DEFAULT) -> list[ChatMessage]:
        """Chat turns for a project, oldest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM chat_messages WHERE project_id = ?
                ORDER BY created_at ASC, rowid ASC
                LIMIT ?
                """,
                (project_id, limit),
            ).fetchall()

        return [ChatMessage.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_by_user(user_id: str, limit: int = API_LIST_LIMIT_DEFAULT) -> list[ChatMessage]:
        """Chat turns for a user across projects, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM chat_messages WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        return [ChatMessage.from_db_row(dict(row)) for row in rows]


class GitHubConnectionRepository:
    """One linked GitHub account per user; relinking replaces the row."""

    @staticmethod
    @retry_on_db_lock()
    def upsert(connection: GitHubConnection) -> GitHubConnection:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO github_connections (
                    user_id, github_id, github_username, github_avatar,
                    github_name, access_token, connected_at
                ) VALUES (
                    :user_id, :github_id, :github_username, :github_avatar,
                    :github_name, :access_token, :connected_at
                )
                ON CONFLICT(user_id) DO UPDATE SET
                    github_id = excluded.github_id,
                    github_username = excluded.github_username,
                    github_avatar = excluded.github_avatar,
                    github_name = excluded.github_name,
                    access_token = excluded.access_token,
                    connected_at = excluded.connected_at
                """,
                connection.to_db_dict(),
            )
        counter("persistence.github_connections.upsert")
        logger.info("Linked GitHub account %s for user %s", connection.github_username, connection.user_id)
        return connection

    @staticmethod
    def get(user_id: str) -> GitHubConnection | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM github_connections WHERE user_id = ?", (user_id,)
            ).fetchone()

        return GitHubConnection.from_db_row(dict(row)) if row else None

    @staticmethod
    def exists(user_id: str) -> bool:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM github_connections WHERE user_id = ?", (user_id,)
            ).fetchone()
        return row is not None

    @staticmethod
    @retry_on_db_lock()
    def delete(user_id: str) -> bool:
        """
        Unlink a user's GitHub account.

        Returns:
            True if a row was deleted
        """
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM github_connections WHERE user_id = ?", (user_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Unlinked GitHub account for user %s", user_id)
        return deleted


class RepositoryFileRepository:
    @staticmethod
    @retry_on_db_lock()
    def add(file: RepositoryFile) -> RepositoryFile:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO repository_files (
                    id, repository_name, file_path, content, user_id, session_id, created_at
                ) VALUES (
                    :id, :repository_name, :file_path, :content, :user_id, :session_id, :created_at
                )
                """,
                file.to_db_dict(),
            )
        counter("persistence.repository_files.insert")
        return file

    @staticmethod
    def list_by_session(session_id: str, limit: int = API_LIST_LIMIT_DEFAULT) -> list[RepositoryFile]:
        """Imported files for a session, in import order."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM repository_files WHERE session_id = ?
                ORDER BY created_at ASC, rowid ASC
                LIMIT ?
                """,
                (session_id, limit),
            ).fetchall()

        return [RepositoryFile.from_db_row(dict(row)) for row in rows]
