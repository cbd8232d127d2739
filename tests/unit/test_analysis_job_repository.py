from unittest.mock import MagicMock, patch

from psycopg.types.json import Jsonb

from docanalysis.database.models import JobStatus
from docanalysis.database.repositories.analysis_job_repository import AnalysisJobRepository

_PATCH = "docanalysis.database.repositories.analysis_job_repository.get_connection"


def _make_row(status: str = "PENDING", response: dict | None = None) -> dict:
    return {
        "id": 1,
        "request_id": "r1",
        "status": status,
        "request": {"user_id": "user-1", "request_id": "r1", "file_path": "/files/f"},
        "response": response,
        "created_at": None,
        "updated_at": None,
    }


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestFindActive:
    @patch(_PATCH)
    def test_returns_record_when_found(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(status="ACK")

        job = AnalysisJobRepository().find_active("r1")

        assert job is not None
        assert job.status is JobStatus.ACK
        assert "status <> 'FAIL'" in mock_cursor.execute.call_args[0][0]

    @patch(_PATCH)
    def test_returns_none_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert AnalysisJobRepository().find_active("r1") is None


class TestFindByStatus:
    @patch(_PATCH)
    def test_filters_by_status_value(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(status="SUCCESS", response={"score": 0.9})

        job = AnalysisJobRepository().find_by_status("r1", JobStatus.SUCCESS)

        assert job is not None
        assert job.response == {"score": 0.9}
        assert mock_cursor.execute.call_args[0][1] == ("r1", "SUCCESS")


class TestCreatePending:
    @patch(_PATCH)
    def test_returns_claimed_job(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        job = AnalysisJobRepository().create_pending("r1", {"request_id": "r1"})

        assert job is not None
        assert job.status is JobStatus.PENDING
        sql, params = mock_cursor.execute.call_args[0]
        assert "ON CONFLICT" in sql
        assert isinstance(params[1], Jsonb)
        mock_conn.commit.assert_called_once()

    @patch(_PATCH)
    def test_returns_none_when_claim_is_held(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert AnalysisJobRepository().create_pending("r1", {}) is None


class TestTransition:
    @patch(_PATCH)
    def test_updates_when_source_status_matches(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(status="ACK")

        job = AnalysisJobRepository().transition(
            1, [JobStatus.PENDING], JobStatus.ACK, None
        )

        assert job is not None
        assert job.status is JobStatus.ACK
        params = mock_cursor.execute.call_args[0][1]
        assert params == ("ACK", None, 1, ["PENDING"])
        mock_conn.commit.assert_called_once()

    @patch(_PATCH)
    def test_wraps_response_as_jsonb(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(status="SUCCESS", response={"score": 0.9})

        AnalysisJobRepository().transition(
            1, [JobStatus.PENDING, JobStatus.ACK], JobStatus.SUCCESS, {"score": 0.9}
        )

        params = mock_cursor.execute.call_args[0][1]
        assert isinstance(params[1], Jsonb)
        assert params[3] == ["PENDING", "ACK"]

    @patch(_PATCH)
    def test_returns_none_when_job_moved_on(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert (
            AnalysisJobRepository().transition(1, [JobStatus.PENDING], JobStatus.FAIL, {})
            is None
        )
