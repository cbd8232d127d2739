from typing import Any

from docanalysis.analysis.client import ExternalAnalysisClient
from docanalysis.analysis.models import AnalysisResult
from docanalysis.auth.identity import CallerIdentity
from docanalysis.auth.tokens import TokenIssuer
from docanalysis.database.models import AnalysisJobRecord, JobStatus
from docanalysis.database.repositories.analysis_job_repository import AnalysisJobRepository
from docanalysis.database.repositories.artifact_repository import ArtifactRepository
from docanalysis.exceptions import (
    InsufficientDataError,
    NotFoundError,
    SubmissionFailedError,
    TransportError,
    ValidationError,
)
from docanalysis.logging.logger import Log

IN_FLIGHT_STATUSES = (JobStatus.PENDING, JobStatus.ACK, JobStatus.SUCCESS)
WEBHOOK_STATUSES = (JobStatus.ACK, JobStatus.SUCCESS, JobStatus.FAIL)


def parse_webhook_status(raw: str | JobStatus) -> JobStatus:
    """Parse a reported status; only ACK, SUCCESS and FAIL may arrive by webhook."""
    try:
        status = JobStatus(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown analysis status '{raw}'") from exc
    if status not in WEBHOOK_STATUSES:
        raise ValidationError(f"Status '{status.value}' cannot be reported by webhook")
    return status


class JobLifecycle:
    """State machine for analysis jobs keyed by logical request id.

    PENDING -> ACK -> SUCCESS, with PENDING -> FAIL and ACK -> FAIL. SUCCESS
    and FAIL are terminal for a row; a failed request is retried by a new row.
    """

    def __init__(
        self,
        job_repo: AnalysisJobRepository,
        artifact_repo: ArtifactRepository,
        client: ExternalAnalysisClient,
        token_issuer: TokenIssuer,
    ) -> None:
        self._job_repo = job_repo
        self._artifact_repo = artifact_repo
        self._client = client
        self._token_issuer = token_issuer

    def submit(self, request_id: str, caller: CallerIdentity) -> AnalysisJobRecord:
        """Send the artifact for ``request_id`` to the analysis service.

        A request that already has a PENDING, ACK or SUCCESS job is returned
        unchanged without calling the service again.

        Raises:
            InsufficientDataError: if no ACTIVE artifact exists for the request id.
            SubmissionFailedError: if the service did not acknowledge the job.
        """
        Log.info("Analysis submission started", request_id=request_id)
        existing = self._job_repo.find_active(request_id)
        if existing is not None and existing.status in IN_FLIGHT_STATUSES:
            Log.info("Analysis request already processed", request_id=request_id)
            return existing

        artifacts = self._artifact_repo.list_active_by_logical_id(request_id)
        if not artifacts:
            Log.warning("No active artifact to analyze", request_id=request_id)
            raise InsufficientDataError("Not enough data to process the analysis request")

        artifact = artifacts[0]
        payload = {
            "user_id": artifact.owner_id,
            "request_id": request_id,
            "file_path": artifact.file_path,
        }
        try:
            token = self._token_issuer.issue(caller)
        except Exception as exc:
            Log.error(f"Could not sign analysis token: {exc}", request_id=request_id)
            raise SubmissionFailedError("Analysis request failed") from exc
        job = self._job_repo.create_pending(request_id, payload)
        if job is None:
            # Lost the claim to a concurrent submission.
            winner = self._job_repo.find_active(request_id)
            if winner is not None:
                Log.info("Analysis request claimed concurrently", request_id=request_id)
                return winner
            raise SubmissionFailedError("Analysis request failed")
        Log.info("Analysis job recorded", request_id=request_id, job_id=job.id)

        status, response, cause = self._send(request_id, payload, token)
        updated = self._job_repo.transition(job.id, [JobStatus.PENDING], status, response)
        if updated is None:
            # A webhook moved the job on before the acknowledgement was recorded.
            updated = self._job_repo.find_by_id(job.id)
            if updated is not None and updated.status in (JobStatus.ACK, JobStatus.SUCCESS):
                return updated
            raise SubmissionFailedError("Analysis request failed") from cause

        if updated.status is not JobStatus.ACK:
            Log.error("Analysis submission failed", request_id=request_id, job_id=job.id)
            raise SubmissionFailedError("Analysis request failed") from cause
        Log.info("Analysis submission acknowledged", request_id=request_id, job_id=job.id)
        return updated

    def _send(
        self, request_id: str, payload: dict[str, Any], token: str
    ) -> tuple[JobStatus, dict[str, Any] | None, Exception | None]:
        # Every outcome must leave the PENDING row, or the request id stays claimed.
        try:
            status_code = self._client.submit(payload, token)
        except TransportError as exc:
            Log.error(f"Analysis API call errored: {exc}", request_id=request_id)
            return JobStatus.FAIL, {"error": "transport", "errorMessage": exc.message}, exc
        except Exception as exc:
            Log.error(f"Analysis API call errored: {exc}", request_id=request_id)
            return JobStatus.FAIL, {"error": "internal", "errorMessage": str(exc)}, exc

        if 200 <= status_code < 300:
            return JobStatus.ACK, None, None
        Log.error(
            "Analysis API call rejected", request_id=request_id, status_code=status_code
        )
        error = {"error": "rejected", "status_code": status_code}
        return JobStatus.FAIL, error, None

    def apply_webhook(
        self,
        request_id: str,
        reported_status: str | JobStatus,
        response: dict[str, Any] | None,
        message: str | None = None,
    ) -> AnalysisJobRecord:
        """Record the outcome reported by the analysis service.

        Replays for a job that is already SUCCESS return it unchanged.

        Raises:
            ValidationError: if the reported status is unknown or PENDING.
            NotFoundError: if no non-failed job exists for the request id.
        """
        status = parse_webhook_status(reported_status)
        Log.info(
            "Analysis webhook received",
            request_id=request_id,
            status=status.value,
            webhook_message=message or "",
        )
        job = self._job_repo.find_active(request_id)
        if job is None:
            Log.warning("Analysis webhook for unknown request", request_id=request_id)
            raise NotFoundError("Request not found")

        if job.status is JobStatus.SUCCESS:
            Log.info("Analysis webhook already applied", request_id=request_id)
            return job

        sources = [source for source in JobStatus if source.can_transition(status)]
        updated = self._job_repo.transition(job.id, sources, status, response)
        if updated is None:
            current = self._job_repo.find_by_id(job.id)
            if current is not None and current.status is JobStatus.SUCCESS:
                return current
            raise NotFoundError("Request not found")

        Log.info("Analysis webhook applied", request_id=request_id, status=status.value)
        return updated

    def get_result(self, request_id: str) -> AnalysisResult:
        """Return a SUCCESS job with the metadata of its active artifacts.

        Raises:
            NotFoundError: unless the request has a SUCCESS job.
        """
        job = self._job_repo.find_by_status(request_id, JobStatus.SUCCESS)
        if job is None:
            raise NotFoundError("Request not found")
        artifacts = self._artifact_repo.list_active_by_logical_id(request_id)
        return AnalysisResult.build(job, artifacts)

    def close(self) -> None:
        self._client.close()
