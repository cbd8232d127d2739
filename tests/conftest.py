import io
import threading
import uuid
import zipfile
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docanalysis.auth.identity import CallerIdentity, Role
from docanalysis.database.models import (
    AnalysisJobRecord,
    ArtifactRecord,
    ArtifactStatus,
    JobStatus,
    NewArtifact,
)
from docanalysis.exceptions import NotFoundError


def _ooxml(main_part: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr(main_part, "<root/>")
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_docx_bytes() -> bytes:
    return _ooxml("word/document.xml")


@pytest.fixture()
def sample_xlsx_bytes() -> bytes:
    return _ooxml("xl/workbook.xml")


@pytest.fixture()
def editor() -> CallerIdentity:
    return CallerIdentity(user_id="user-1", role=Role.EDITOR, email="e@example.com", name="Ed")


@pytest.fixture()
def admin() -> CallerIdentity:
    return CallerIdentity(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture()
def viewer() -> CallerIdentity:
    return CallerIdentity(user_id="user-2", role=Role.VIEWER)


class InMemoryArtifactRepository:
    """Thread-safe stand-in for ArtifactRepository with the same contract."""

    def __init__(self) -> None:
        self.rows: dict[str, ArtifactRecord] = {}
        self._lock = threading.Lock()

    def create(self, artifact: NewArtifact) -> ArtifactRecord:
        now = datetime.now(timezone.utc)
        record = ArtifactRecord(
            id=str(uuid.uuid4()),
            logical_id=artifact.logical_id,
            owner_id=artifact.owner_id,
            file_name=artifact.file_name,
            display_name=artifact.display_name,
            file_path=artifact.file_path,
            file_size=artifact.file_size,
            file_type=artifact.file_type,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.rows[record.id] = record
        return record

    def _scoped(self, artifact_id: str, owner_id: str | None) -> ArtifactRecord:
        row = self.rows.get(artifact_id)
        if row is None or (owner_id is not None and row.owner_id != owner_id):
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return row

    def find_active_by_id(self, artifact_id: str, owner_id: str | None) -> ArtifactRecord:
        row = self._scoped(artifact_id, owner_id)
        if row.status is not ArtifactStatus.ACTIVE:
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return row

    def list_active(
        self, limit: int, offset: int, owner_id: str | None
    ) -> tuple[list[ArtifactRecord], int]:
        rows = [
            r
            for r in self.rows.values()
            if r.status is ArtifactStatus.ACTIVE and (owner_id is None or r.owner_id == owner_id)
        ]
        return rows[offset : offset + limit], len(rows)

    def list_active_by_logical_id(self, logical_id: str) -> list[ArtifactRecord]:
        return [
            r
            for r in self.rows.values()
            if r.logical_id == logical_id and r.status is ArtifactStatus.ACTIVE
        ]

    def deactivate(self, artifact_id: str, owner_id: str | None) -> ArtifactRecord:
        with self._lock:
            row = self._scoped(artifact_id, owner_id)
            if row.status is ArtifactStatus.ACTIVE:
                row = replace(row, status=ArtifactStatus.INACTIVE)
                self.rows[artifact_id] = row
        return row

    def delete(self, artifact_id: str, owner_id: str | None) -> None:
        with self._lock:
            self._scoped(artifact_id, owner_id)
            del self.rows[artifact_id]


class InMemoryAnalysisJobRepository:
    """Stand-in for AnalysisJobRepository honoring the one-active-job-per-request rule."""

    def __init__(self) -> None:
        self.rows: dict[int, AnalysisJobRecord] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def find_active(self, request_id: str) -> AnalysisJobRecord | None:
        with self._lock:
            candidates = [
                r
                for r in self.rows.values()
                if r.request_id == request_id and r.status is not JobStatus.FAIL
            ]
        return candidates[-1] if candidates else None

    def find_by_status(self, request_id: str, status: JobStatus) -> AnalysisJobRecord | None:
        with self._lock:
            candidates = [
                r for r in self.rows.values() if r.request_id == request_id and r.status is status
            ]
        return candidates[-1] if candidates else None

    def find_by_id(self, job_id: int) -> AnalysisJobRecord | None:
        return self.rows.get(job_id)

    def create_pending(
        self, request_id: str, request_payload: dict[str, Any]
    ) -> AnalysisJobRecord | None:
        with self._lock:
            if self.find_active(request_id) is not None:
                return None
            record = AnalysisJobRecord(
                id=self._next_id,
                request_id=request_id,
                status=JobStatus.PENDING,
                request=request_payload,
            )
            self.rows[record.id] = record
            self._next_id += 1
        return record

    def transition(
        self,
        job_id: int,
        from_statuses: Any,
        to_status: JobStatus,
        response: dict[str, Any] | None,
    ) -> AnalysisJobRecord | None:
        with self._lock:
            row = self.rows.get(job_id)
            if row is None or row.status not in list(from_statuses):
                return None
            row = replace(row, status=to_status, response=response)
            self.rows[job_id] = row
        return row


@pytest.fixture()
def artifact_repo() -> InMemoryArtifactRepository:
    return InMemoryArtifactRepository()


@pytest.fixture()
def job_repo() -> InMemoryAnalysisJobRepository:
    return InMemoryAnalysisJobRepository()
