from typing import Any

import httpx

from docanalysis.exceptions import TransportError
from docanalysis.logging.logger import Log


class ExternalAnalysisClient:
    """Submits analysis requests to the external processor over HTTP."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        submit_path: str = "process",
    ) -> None:
        self._submit_path = submit_path
        self._client = httpx.Client(base_url=base_url, timeout=timeout_seconds)

    def submit(self, payload: dict[str, Any], bearer_token: str) -> int:
        """POST the payload and return the response status code.

        Non-2xx responses are returned, not raised; only transport failures raise.

        Raises:
            TransportError: on connection failure or timeout.
        """
        try:
            response = self._client.post(
                self._submit_path,
                json=payload,
                headers={"Authorization": f"Bearer {bearer_token}"},
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Analysis service timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Analysis service unreachable: {exc}") from exc

        Log.info(
            f"Analysis service responded {response.status_code}",
            path=self._submit_path,
        )
        return response.status_code

    def close(self) -> None:
        self._client.close()
