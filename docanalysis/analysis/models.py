from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from docanalysis.database.models import AnalysisJobRecord, ArtifactRecord, JobStatus


@dataclass(frozen=True)
class ArtifactMetadata:
    """Artifact fields returned alongside an analysis result."""

    file_name: str
    display_name: str
    file_path: str
    file_size: int
    file_type: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ArtifactRecord) -> "ArtifactMetadata":
        return cls(
            file_name=record.file_name,
            display_name=record.display_name,
            file_path=record.file_path,
            file_size=record.file_size,
            file_type=record.file_type.value,
            created_at=record.created_at,
        )


@dataclass(frozen=True)
class AnalysisResult:
    """A finished job joined with the active artifacts of its logical id."""

    request_id: str
    status: JobStatus
    response: dict[str, Any] | None
    file_metadata: list[ArtifactMetadata] = field(default_factory=list)

    @classmethod
    def build(
        cls, job: AnalysisJobRecord, artifacts: list[ArtifactRecord]
    ) -> "AnalysisResult":
        return cls(
            request_id=job.request_id,
            status=job.status,
            response=job.response,
            file_metadata=[ArtifactMetadata.from_record(a) for a in artifacts],
        )
