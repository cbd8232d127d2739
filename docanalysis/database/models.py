from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class FileType(str, Enum):
    PDF = "PDF"
    DOCX = "DOCX"
    XLSX = "XLSX"


class ArtifactStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    ACK = "ACK"
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"

    def can_transition(self, target: "JobStatus") -> bool:
        """SUCCESS and FAIL are terminal; PENDING and ACK may move forward."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.ACK, JobStatus.SUCCESS, JobStatus.FAIL}),
    JobStatus.ACK: frozenset({JobStatus.ACK, JobStatus.SUCCESS, JobStatus.FAIL}),
    JobStatus.SUCCESS: frozenset(),
    JobStatus.FAIL: frozenset(),
}


@dataclass(frozen=True)
class ArtifactRecord:
    """Represents a row from the artifacts table."""

    id: str
    logical_id: str
    owner_id: str
    file_name: str
    display_name: str
    file_path: str
    file_size: int
    file_type: FileType
    status: ArtifactStatus = ArtifactStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class NewArtifact:
    """Column values for an artifact that has not been inserted yet."""

    logical_id: str
    owner_id: str
    file_name: str
    display_name: str
    file_path: str
    file_size: int
    file_type: FileType


@dataclass(frozen=True)
class AnalysisJobRecord:
    """Represents a row from the analysis_jobs table."""

    id: int
    request_id: str
    status: JobStatus
    request: dict[str, Any]
    response: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
