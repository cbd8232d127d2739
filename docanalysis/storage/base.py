from abc import ABC, abstractmethod
from typing import BinaryIO


class BaseChunkStore(ABC):
    """Contract for byte stores holding in-flight upload chunks."""

    @abstractmethod
    def put_chunk(self, upload_name: str, index: int, data: bytes) -> None:
        """Persist one chunk, replacing any earlier write for the same index.

        Raises:
            StorageIOError: if the backing medium cannot be written.
        """

    @abstractmethod
    def list_indices(self, upload_name: str) -> list[int]:
        """Return the chunk indices currently stored for an upload, unordered."""

    @abstractmethod
    def open_chunk(self, upload_name: str, index: int) -> BinaryIO:
        """Open one stored chunk for streaming reads."""

    @abstractmethod
    def try_claim_merge(self, upload_name: str) -> bool:
        """Atomically claim the right to merge an upload.

        Returns False if another caller already holds the claim. A claim outlives
        ``purge`` so late duplicate chunks of a merged upload cannot start a
        second merge; it is dropped by ``release_merge`` or by the sweeper.
        """

    @abstractmethod
    def release_merge(self, upload_name: str) -> None:
        """Drop the merge claim so the upload can be assembled again."""

    @abstractmethod
    def purge(self, upload_name: str) -> None:
        """Remove every chunk of an upload. A missing upload is not an error."""

    @abstractmethod
    def stale_uploads(self, older_than_seconds: int) -> list[str]:
        """Return names of uploads whose chunks and claim are older than the threshold."""
