from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from docanalysis.analysis.client import ExternalAnalysisClient
from docanalysis.analysis.lifecycle import JobLifecycle
from docanalysis.analysis.models import AnalysisResult
from docanalysis.artifacts.service import ArtifactPage, ArtifactService
from docanalysis.assembly.assembler import ChunkAssembler, ChunkUpload
from docanalysis.auth.identity import CallerIdentity
from docanalysis.auth.tokens import TokenIssuer, bearer_token
from docanalysis.config.settings import Settings
from docanalysis.database.connection import close_pool, init_pool
from docanalysis.database.models import AnalysisJobRecord, ArtifactRecord
from docanalysis.database.repositories.analysis_job_repository import AnalysisJobRepository
from docanalysis.database.repositories.artifact_repository import ArtifactRepository
from docanalysis.exceptions import PermissionDeniedError
from docanalysis.storage.factory import ChunkStoreFactory


class DocAnalysisService:
    """Entry points called by the transport layer, one per external operation."""

    def __init__(
        self,
        assembler: ChunkAssembler,
        artifacts: ArtifactService,
        lifecycle: JobLifecycle,
        token_issuer: TokenIssuer,
    ) -> None:
        self._assembler = assembler
        self._artifacts = artifacts
        self._lifecycle = lifecycle
        self._token_issuer = token_issuer

    def authenticate(self, authorization_header: str | None) -> CallerIdentity:
        return self._token_issuer.verify(bearer_token(authorization_header))

    def upload_chunk(self, chunk: ChunkUpload, caller: CallerIdentity) -> ArtifactRecord | None:
        """Store a chunk; returns the artifact once the upload is complete, else None."""
        if not caller.can_write:
            raise PermissionDeniedError(f"Role {caller.role.value} may not upload files")
        return self._assembler.ingest(chunk, caller.user_id)

    def get_artifact(self, artifact_id: str, caller: CallerIdentity) -> ArtifactRecord:
        return self._artifacts.get(artifact_id, caller)

    def list_artifacts(
        self, caller: CallerIdentity, limit: int | None = None, page: int | None = None
    ) -> ArtifactPage:
        return self._artifacts.list_active(caller, limit=limit, page=page)

    def deactivate_artifact(self, artifact_id: str, caller: CallerIdentity) -> ArtifactRecord:
        return self._artifacts.deactivate(artifact_id, caller)

    def delete_artifact(self, artifact_id: str, caller: CallerIdentity) -> None:
        self._artifacts.delete(artifact_id, caller)

    def submit_analysis(self, request_id: str, caller: CallerIdentity) -> AnalysisJobRecord:
        return self._lifecycle.submit(request_id, caller)

    def apply_webhook(
        self,
        request_id: str,
        status: str,
        response: dict[str, Any] | None,
        message: str | None = None,
    ) -> AnalysisJobRecord:
        return self._lifecycle.apply_webhook(request_id, status, response, message=message)

    def get_analysis_result(self, request_id: str) -> AnalysisResult:
        return self._lifecycle.get_result(request_id)

    def close(self) -> None:
        self._lifecycle.close()


def build_service(settings: Settings) -> DocAnalysisService:
    """Build a DocAnalysisService with all required adapters."""
    artifact_repo = ArtifactRepository()
    token_issuer = TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_hours=settings.jwt_expire_hours,
    )
    assembler = ChunkAssembler(
        chunk_store=ChunkStoreFactory.create(settings),
        artifact_repo=artifact_repo,
        files_root=Path(settings.files_root),
        max_chunk_size_bytes=settings.max_chunk_size_bytes,
    )
    artifacts = ArtifactService(
        artifact_repo,
        default_limit=settings.list_default_limit,
        max_limit=settings.list_max_limit,
    )
    client = ExternalAnalysisClient(
        base_url=settings.analysis_base_url,
        timeout_seconds=settings.analysis_timeout_seconds,
        submit_path=settings.analysis_submit_path,
    )
    lifecycle = JobLifecycle(AnalysisJobRepository(), artifact_repo, client, token_issuer)
    return DocAnalysisService(assembler, artifacts, lifecycle, token_issuer)


@contextmanager
def running_service(settings: Settings) -> Generator[DocAnalysisService, None, None]:
    """Open the connection pool, yield a wired service, and release both on exit."""
    init_pool(settings)
    try:
        service = build_service(settings)
        try:
            yield service
        finally:
            service.close()
    finally:
        close_pool()
