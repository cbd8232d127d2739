import pytest

from docanalysis.database.models import JobStatus
from docanalysis.database.repositories.analysis_job_repository import AnalysisJobRepository


@pytest.mark.integration
class TestCreatePendingClaim:
    def test_second_claim_for_active_request_is_refused(self, run_id: str) -> None:
        repo = AnalysisJobRepository()
        request_id = f"{run_id}-r1"

        first = repo.create_pending(request_id, {"request_id": request_id})
        second = repo.create_pending(request_id, {"request_id": request_id})

        assert first is not None
        assert first.request == {"request_id": request_id}
        assert second is None

    def test_failed_job_frees_the_request_id(self, run_id: str) -> None:
        repo = AnalysisJobRepository()
        request_id = f"{run_id}-r1"
        first = repo.create_pending(request_id, {})
        assert first is not None
        repo.transition(first.id, [JobStatus.PENDING], JobStatus.FAIL, {"error": "rejected"})

        retry = repo.create_pending(request_id, {})

        assert retry is not None
        assert retry.id != first.id
        active = repo.find_active(request_id)
        assert active is not None
        assert active.id == retry.id


@pytest.mark.integration
class TestTransition:
    def test_moves_job_and_stores_response(self, run_id: str) -> None:
        repo = AnalysisJobRepository()
        job = repo.create_pending(f"{run_id}-r1", {})
        assert job is not None

        repo.transition(job.id, [JobStatus.PENDING], JobStatus.ACK, None)
        done = repo.transition(
            job.id, [JobStatus.PENDING, JobStatus.ACK], JobStatus.SUCCESS, {"score": 0.9}
        )

        assert done is not None
        assert done.status is JobStatus.SUCCESS
        assert done.response == {"score": 0.9}
        found = repo.find_by_status(f"{run_id}-r1", JobStatus.SUCCESS)
        assert found is not None
        assert found.id == job.id

    def test_refuses_stale_source_status(self, run_id: str) -> None:
        repo = AnalysisJobRepository()
        job = repo.create_pending(f"{run_id}-r1", {})
        assert job is not None
        repo.transition(job.id, [JobStatus.PENDING], JobStatus.SUCCESS, {"score": 1})

        assert repo.transition(job.id, [JobStatus.PENDING], JobStatus.ACK, None) is None
        current = repo.find_by_id(job.id)
        assert current is not None
        assert current.status is JobStatus.SUCCESS
