import os
import shutil
import time
from pathlib import Path
from typing import BinaryIO

from docanalysis.exceptions import StorageIOError, ValidationError
from docanalysis.logging.logger import Log
from docanalysis.storage.base import BaseChunkStore

CHUNK_PREFIX = "chunk_"
CLAIMS_DIR = ".claims"
CLAIM_SUFFIX = ".lock"


class LocalChunkStore(BaseChunkStore):
    """Keeps each upload's chunks in its own directory on the local disk.

    Layout: ``{chunks_root}/{upload_name}/chunk_{index}`` with merge claims
    under ``{chunks_root}/.claims/{upload_name}.lock``.
    """

    def __init__(self, chunks_root: Path) -> None:
        self._chunks_root = chunks_root

    def put_chunk(self, upload_name: str, index: int, data: bytes) -> None:
        upload_dir = self._upload_dir(upload_name)
        target = upload_dir / f"{CHUNK_PREFIX}{index}"
        # Unique per writer so concurrent writes of one index never share a temp file.
        partial = upload_dir / f".{CHUNK_PREFIX}{index}.{os.getpid()}.{time.monotonic_ns()}.part"
        for attempt in range(2):
            try:
                upload_dir.mkdir(parents=True, exist_ok=True)
                partial.write_bytes(data)
                os.replace(partial, target)
                return
            except FileNotFoundError as exc:
                # The directory was purged under us by a finishing merge.
                if attempt:
                    raise StorageIOError(
                        f"Could not store chunk {index} of '{upload_name}'"
                    ) from exc
            except OSError as exc:
                partial.unlink(missing_ok=True)
                raise StorageIOError(f"Could not store chunk {index} of '{upload_name}'") from exc

    def list_indices(self, upload_name: str) -> list[int]:
        upload_dir = self._upload_dir(upload_name)
        try:
            names = os.listdir(upload_dir)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageIOError(f"Could not list chunks of '{upload_name}'") from exc

        indices = []
        for name in names:
            suffix = name.removeprefix(CHUNK_PREFIX)
            if name.startswith(CHUNK_PREFIX) and suffix.isdigit():
                indices.append(int(suffix))
        return indices

    def open_chunk(self, upload_name: str, index: int) -> BinaryIO:
        path = self._upload_dir(upload_name) / f"{CHUNK_PREFIX}{index}"
        try:
            return path.open("rb")
        except OSError as exc:
            raise StorageIOError(f"Could not read chunk {index} of '{upload_name}'") from exc

    def try_claim_merge(self, upload_name: str) -> bool:
        claim = self._claim_path(upload_name)
        try:
            claim.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(claim, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        except OSError as exc:
            raise StorageIOError(f"Could not claim merge of '{upload_name}'") from exc
        os.close(fd)
        return True

    def release_merge(self, upload_name: str) -> None:
        try:
            self._claim_path(upload_name).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Could not release merge of '{upload_name}'") from exc

    def purge(self, upload_name: str) -> None:
        upload_dir = self._upload_dir(upload_name)
        try:
            shutil.rmtree(upload_dir)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageIOError(f"Could not purge chunks of '{upload_name}'") from exc

    def stale_uploads(self, older_than_seconds: int) -> list[str]:
        cutoff = time.time() - older_than_seconds
        names = set()
        if self._chunks_root.is_dir():
            names.update(
                p.name
                for p in self._chunks_root.iterdir()
                if p.is_dir() and not p.name.startswith(".")
            )
        claims_dir = self._chunks_root / CLAIMS_DIR
        if claims_dir.is_dir():
            names.update(
                p.name.removesuffix(CLAIM_SUFFIX)
                for p in claims_dir.iterdir()
                if p.name.endswith(CLAIM_SUFFIX) and not p.name.startswith(".")
            )

        stale = []
        for name in sorted(names):
            newest = self._newest_mtime(name)
            if newest is not None and newest < cutoff:
                stale.append(name)
        Log.debug(f"Found {len(stale)} stale uploads", chunks_root=self._chunks_root)
        return stale

    def _newest_mtime(self, upload_name: str) -> float | None:
        upload_dir = self._chunks_root / upload_name
        paths = [self._claim_path(upload_name), upload_dir]
        if upload_dir.is_dir():
            try:
                paths.extend(upload_dir.iterdir())
            except FileNotFoundError:
                pass
        mtimes = []
        for path in paths:
            try:
                mtimes.append(path.stat().st_mtime)
            except FileNotFoundError:
                continue
        return max(mtimes) if mtimes else None

    def _claim_path(self, upload_name: str) -> Path:
        self._upload_dir(upload_name)
        return self._chunks_root / CLAIMS_DIR / f"{upload_name}{CLAIM_SUFFIX}"

    def _upload_dir(self, upload_name: str) -> Path:
        if (
            not upload_name
            or upload_name.startswith(".")
            or "/" in upload_name
            or "\\" in upload_name
            or "\x00" in upload_name
        ):
            raise ValidationError(f"Invalid upload name '{upload_name}'")
        return self._chunks_root / upload_name
