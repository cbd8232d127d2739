import uuid
from dataclasses import dataclass

from docanalysis.artifacts.pagination import valid_pagination
from docanalysis.auth.identity import CallerIdentity
from docanalysis.database.models import ArtifactRecord
from docanalysis.database.repositories.artifact_repository import ArtifactRepository
from docanalysis.exceptions import NotFoundError, PermissionDeniedError
from docanalysis.logging.logger import Log


@dataclass(frozen=True)
class ArtifactPage:
    items: list[ArtifactRecord]
    total: int
    limit: int
    page: int


class ArtifactService:
    """Role-scoped reads and lifecycle changes for stored artifacts."""

    def __init__(
        self,
        artifact_repo: ArtifactRepository,
        default_limit: int,
        max_limit: int,
    ) -> None:
        self._artifact_repo = artifact_repo
        self._default_limit = default_limit
        self._max_limit = max_limit

    def get(self, artifact_id: str, caller: CallerIdentity) -> ArtifactRecord:
        _require_uuid(artifact_id)
        return self._artifact_repo.find_active_by_id(artifact_id, caller.owner_scope())

    def list_active(
        self, caller: CallerIdentity, limit: int | None = None, page: int | None = None
    ) -> ArtifactPage:
        paging = valid_pagination(limit, page, self._default_limit, self._max_limit)
        items, total = self._artifact_repo.list_active(
            paging.limit, paging.offset, caller.owner_scope()
        )
        return ArtifactPage(items=items, total=total, limit=paging.limit, page=paging.page)

    def deactivate(self, artifact_id: str, caller: CallerIdentity) -> ArtifactRecord:
        """Mark an artifact INACTIVE; calling it again is harmless."""
        _require_writer(caller)
        _require_uuid(artifact_id)
        Log.info("Artifact deactivation started", artifact_id=artifact_id)
        try:
            artifact = self._artifact_repo.deactivate(artifact_id, caller.owner_scope())
        except NotFoundError:
            Log.warning("Artifact to deactivate not found", artifact_id=artifact_id)
            raise
        Log.info("Artifact deactivated", artifact_id=artifact_id)
        return artifact

    def delete(self, artifact_id: str, caller: CallerIdentity) -> None:
        _require_writer(caller)
        _require_uuid(artifact_id)
        Log.info("Artifact deletion started", artifact_id=artifact_id)
        try:
            self._artifact_repo.delete(artifact_id, caller.owner_scope())
        except NotFoundError:
            Log.warning("Artifact to delete not found", artifact_id=artifact_id)
            raise
        Log.info("Artifact deleted", artifact_id=artifact_id)


def _require_writer(caller: CallerIdentity) -> None:
    if not caller.can_write:
        raise PermissionDeniedError(f"Role {caller.role.value} may not modify artifacts")


def _require_uuid(artifact_id: str) -> None:
    # Malformed ids cannot exist; report them like any other missing row.
    try:
        uuid.UUID(artifact_id)
    except ValueError as exc:
        raise NotFoundError(f"Artifact {artifact_id} not found") from exc
