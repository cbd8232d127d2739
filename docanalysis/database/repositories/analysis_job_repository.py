from collections.abc import Iterable
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docanalysis.database.connection import get_connection
from docanalysis.database.models import AnalysisJobRecord, JobStatus

_COLUMNS = "id, request_id, status, request, response, created_at, updated_at"


def _to_record(row: dict[str, Any]) -> AnalysisJobRecord:
    return AnalysisJobRecord(
        id=row["id"],
        request_id=row["request_id"],
        status=JobStatus(row["status"]),
        request=row["request"],
        response=row["response"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class AnalysisJobRepository:
    """Database operations for the analysis_jobs table."""

    def find_active(self, request_id: str) -> AnalysisJobRecord | None:
        """Find the non-FAIL job for a request id, if any."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM analysis_jobs
                    WHERE request_id = %s AND status <> 'FAIL'
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                    """,
                    (request_id,),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def find_by_status(self, request_id: str, status: JobStatus) -> AnalysisJobRecord | None:
        """Find the most recent job for a request id in the given status."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM analysis_jobs
                    WHERE request_id = %s AND status = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                    """,
                    (request_id, status.value),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def find_by_id(self, job_id: int) -> AnalysisJobRecord | None:
        """Find a job by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM analysis_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def create_pending(
        self, request_id: str, request_payload: dict[str, Any]
    ) -> AnalysisJobRecord | None:
        """Claim a request id by inserting a PENDING job.

        Returns None when another non-FAIL job already holds the request id;
        the partial unique index on analysis_jobs makes the claim atomic.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO analysis_jobs (request_id, request, status)
                    VALUES (%s, %s, 'PENDING')
                    ON CONFLICT (request_id) WHERE status <> 'FAIL' DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    (request_id, Jsonb(request_payload)),
                )
                row = cur.fetchone()
            conn.commit()
        return _to_record(row) if row is not None else None

    def transition(
        self,
        job_id: int,
        from_statuses: Iterable[JobStatus],
        to_status: JobStatus,
        response: dict[str, Any] | None,
    ) -> AnalysisJobRecord | None:
        """Move a job to ``to_status`` only if it is still in one of ``from_statuses``.

        Returns the updated row, or None if the job has already moved on.
        """
        expected = [status.value for status in from_statuses]
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE analysis_jobs
                    SET status = %s, response = %s, updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        to_status.value,
                        Jsonb(response) if response is not None else None,
                        job_id,
                        expected,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        return _to_record(row) if row is not None else None
