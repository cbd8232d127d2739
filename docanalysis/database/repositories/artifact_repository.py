from typing import Any

from psycopg.rows import dict_row

from docanalysis.database.connection import get_connection
from docanalysis.database.models import ArtifactRecord, ArtifactStatus, FileType, NewArtifact
from docanalysis.exceptions import NotFoundError

_COLUMNS = """
    id, logical_id, owner_id, file_name, display_name, file_path,
    file_size, file_type, status, created_at, updated_at
"""


def _scoped(where: str, params: list[Any], owner_id: str | None) -> tuple[str, list[Any]]:
    """Narrow a WHERE clause to one owner unless the caller is elevated."""
    if owner_id is None:
        return where, params
    return f"{where} AND owner_id = %s", [*params, owner_id]


def _to_record(row: dict[str, Any]) -> ArtifactRecord:
    return ArtifactRecord(
        id=str(row["id"]),
        logical_id=row["logical_id"],
        owner_id=row["owner_id"],
        file_name=row["file_name"],
        display_name=row["display_name"],
        file_path=row["file_path"],
        file_size=row["file_size"],
        file_type=FileType(row["file_type"]),
        status=ArtifactStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ArtifactRepository:
    """Database operations for the artifacts table.

    Every lookup that takes ``owner_id`` treats ``None`` as an elevated caller.
    A row outside the caller's scope is reported exactly like a missing row.
    """

    def create(self, artifact: NewArtifact) -> ArtifactRecord:
        """Insert an ACTIVE artifact and return the stored row."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO artifacts
                    (logical_id, owner_id, file_name, display_name, file_path,
                     file_size, file_type, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        artifact.logical_id,
                        artifact.owner_id,
                        artifact.file_name,
                        artifact.display_name,
                        artifact.file_path,
                        artifact.file_size,
                        artifact.file_type.value,
                        ArtifactStatus.ACTIVE.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO artifacts returned no row")
        return _to_record(row)

    def find_active_by_id(self, artifact_id: str, owner_id: str | None) -> ArtifactRecord:
        """Find an ACTIVE artifact by ID.

        Raises:
            NotFoundError: if the artifact is missing, inactive or not owned by the caller.
        """
        where, params = _scoped("id = %s AND status = %s", [artifact_id, "ACTIVE"], owner_id)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM artifacts WHERE {where}", params)
                row = cur.fetchone()

        if row is None:
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return _to_record(row)

    def list_active(
        self, limit: int, offset: int, owner_id: str | None
    ) -> tuple[list[ArtifactRecord], int]:
        """Return one page of ACTIVE artifacts, newest first, and the total count."""
        where, params = _scoped("status = %s", ["ACTIVE"], owner_id)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM artifacts
                    WHERE {where}
                    ORDER BY created_at DESC, id
                    LIMIT %s OFFSET %s
                    """,
                    [*params, limit, offset],
                )
                rows = cur.fetchall()
                cur.execute(f"SELECT COUNT(*) AS total FROM artifacts WHERE {where}", params)
                count_row = cur.fetchone()

        total = count_row["total"] if count_row is not None else 0
        return [_to_record(row) for row in rows], total

    def list_active_by_logical_id(self, logical_id: str) -> list[ArtifactRecord]:
        """Return every ACTIVE artifact sharing a logical id, oldest first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM artifacts
                    WHERE logical_id = %s AND status = %s
                    ORDER BY created_at, id
                    """,
                    (logical_id, "ACTIVE"),
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def deactivate(self, artifact_id: str, owner_id: str | None) -> ArtifactRecord:
        """Set an artifact INACTIVE. An already inactive row is returned unchanged.

        Raises:
            NotFoundError: if the artifact is missing or not owned by the caller.
        """
        where, params = _scoped("id = %s", [artifact_id], owner_id)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE artifacts
                    SET status = %s, updated_at = NOW()
                    WHERE {where} AND status = %s
                    RETURNING {_COLUMNS}
                    """,
                    ["INACTIVE", *params, "ACTIVE"],
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute(f"SELECT {_COLUMNS} FROM artifacts WHERE {where}", params)
                    row = cur.fetchone()
            conn.commit()

        if row is None:
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return _to_record(row)

    def delete(self, artifact_id: str, owner_id: str | None) -> None:
        """Permanently delete an artifact row.

        Raises:
            NotFoundError: if the artifact is missing or not owned by the caller.
        """
        where, params = _scoped("id = %s", [artifact_id], owner_id)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM artifacts WHERE {where}", params)
                if cur.rowcount == 0:
                    raise NotFoundError(f"Artifact {artifact_id} not found")
            conn.commit()
