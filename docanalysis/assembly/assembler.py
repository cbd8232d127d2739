import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from docanalysis.database.models import ArtifactRecord, NewArtifact
from docanalysis.database.repositories.artifact_repository import ArtifactRepository
from docanalysis.exceptions import StorageIOError, UnsupportedTypeError, ValidationError
from docanalysis.logging.logger import Log
from docanalysis.storage.base import BaseChunkStore
from docanalysis.storage.file_types import detect_mime_type, file_type_for_mime


def artifact_file_path(files_root: Path, owner_id: str, file_name: str) -> Path:
    """Build path to a merged artifact: {files_root}/{owner_id}/{file_name}"""
    return files_root / owner_id / file_name


@dataclass(frozen=True)
class ChunkUpload:
    """One chunk of a file plus the sidecar fields sent with every chunk."""

    logical_id: str
    file_name: str
    display_name: str
    declared_size: int
    chunk_index: int
    total_chunks: int
    data: bytes


class ChunkAssembler:
    """Collects out-of-order chunks and merges each upload into one artifact.

    Pipeline per call: store chunk -> check completeness -> claim merge ->
    merge in index order -> detect type -> persist artifact -> purge chunks.
    """

    def __init__(
        self,
        chunk_store: BaseChunkStore,
        artifact_repo: ArtifactRepository,
        files_root: Path,
        max_chunk_size_bytes: int,
    ) -> None:
        self._chunk_store = chunk_store
        self._artifact_repo = artifact_repo
        self._files_root = files_root
        self._max_chunk_size_bytes = max_chunk_size_bytes

    def ingest(self, chunk: ChunkUpload, owner_id: str) -> ArtifactRecord | None:
        """Store one chunk and, once every index has arrived, build the artifact.

        Returns None while the upload is incomplete, and also when another
        caller has already claimed the merge for this upload.

        Raises:
            ValidationError: for an out-of-range index, an oversized chunk, a
                merged size that differs from the declared size, or an
                artifact file that already exists for this owner and name.
            UnsupportedTypeError: if the merged file is not PDF, DOCX or XLSX.
            StorageIOError: if the byte store fails.
        """
        self._validate(chunk)
        upload_name = chunk.file_name

        self._chunk_store.put_chunk(upload_name, chunk.chunk_index, chunk.data)
        Log.info(
            f"Saved chunk {chunk.chunk_index + 1}/{chunk.total_chunks} for upload '{upload_name}'",
            logical_id=chunk.logical_id,
        )

        indices = self._chunk_store.list_indices(upload_name)
        if len(indices) != chunk.total_chunks:
            return None

        if not self._chunk_store.try_claim_merge(upload_name):
            Log.info(f"Upload '{upload_name}' is already being merged")
            return None

        target = artifact_file_path(self._files_root, owner_id, upload_name)
        merged = False
        try:
            Log.info(f"Merging {len(indices)} chunks for upload '{upload_name}'")
            self._merge(upload_name, sorted(indices), target)
            merged = True
            artifact = self._record_artifact(chunk, owner_id, target)
        except Exception as exc:
            Log.error(f"Upload '{upload_name}' failed: {exc}", logical_id=chunk.logical_id)
            if merged:
                self._discard(target)
            self._purge(upload_name)
            self._release(upload_name)
            raise
        # The claim stays after success so late duplicates cannot merge again.
        self._purge(upload_name)

        Log.info(
            f"Upload '{upload_name}' stored as artifact {artifact.id}",
            logical_id=chunk.logical_id,
            file_type=artifact.file_type.value,
            file_size=artifact.file_size,
        )
        return artifact

    def _validate(self, chunk: ChunkUpload) -> None:
        if chunk.total_chunks < 1:
            raise ValidationError("total chunks must be at least 1")
        if not 0 <= chunk.chunk_index < chunk.total_chunks:
            raise ValidationError(
                f"chunk index {chunk.chunk_index} is outside [0, {chunk.total_chunks})"
            )
        if len(chunk.data) > self._max_chunk_size_bytes:
            raise ValidationError(
                f"chunk exceeds the {self._max_chunk_size_bytes} byte limit"
            )

    def _merge(self, upload_name: str, indices: list[int], target: Path) -> None:
        """Concatenate chunks strictly in ascending index order into ``target``.

        An existing file at ``target`` is never replaced.
        """
        if target.exists():
            raise ValidationError(f"artifact file '{target.name}' already exists")
        # The merge claim makes the partial file ours alone.
        partial = _partial_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as out:
                for index in indices:
                    with self._chunk_store.open_chunk(upload_name, index) as source:
                        shutil.copyfileobj(source, out)
                out.flush()
                os.fsync(out.fileno())
            try:
                os.link(partial, target)
            except FileExistsError as exc:
                raise ValidationError(f"artifact file '{target.name}' already exists") from exc
        except OSError as exc:
            raise StorageIOError(f"Could not merge upload '{upload_name}'") from exc
        finally:
            self._discard(partial)

    def _record_artifact(
        self, chunk: ChunkUpload, owner_id: str, target: Path
    ) -> ArtifactRecord:
        merged_size = target.stat().st_size
        mime_type = detect_mime_type(target)
        file_type = file_type_for_mime(mime_type)
        if file_type is None:
            raise UnsupportedTypeError(
                "Invalid file type. Only PDF, DOCX, and XLSX are allowed"
            )
        if merged_size != chunk.declared_size:
            raise ValidationError(
                f"merged size {merged_size} does not match declared size {chunk.declared_size}"
            )
        return self._artifact_repo.create(
            NewArtifact(
                logical_id=chunk.logical_id,
                owner_id=owner_id,
                file_name=chunk.file_name,
                display_name=chunk.display_name,
                file_path=str(target),
                file_size=merged_size,
                file_type=file_type,
            )
        )

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Could not remove merged output {path}: {exc}")

    def _purge(self, upload_name: str) -> None:
        # Cleanup must not mask the merge outcome; the sweeper retries leftovers.
        try:
            self._chunk_store.purge(upload_name)
        except StorageIOError as exc:
            Log.warning(f"Could not purge chunks of '{upload_name}': {exc}")

    def _release(self, upload_name: str) -> None:
        try:
            self._chunk_store.release_merge(upload_name)
        except StorageIOError as exc:
            Log.warning(f"Could not release merge claim of '{upload_name}': {exc}")


def _partial_path(target: Path) -> Path:
    return target.with_name(f"{target.name}.part")
