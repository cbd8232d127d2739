from pathlib import Path

from docanalysis.config.settings import Settings
from docanalysis.exceptions import UnsupportedStorageDiskError
from docanalysis.storage.base import BaseChunkStore
from docanalysis.storage.local_chunk_store import LocalChunkStore


class ChunkStoreFactory:
    """Creates the chunk store for the configured storage disk."""

    ADAPTERS: dict[str, type[LocalChunkStore]] = {
        "local": LocalChunkStore,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseChunkStore:
        disk = settings.storage_disk.lower()
        adapter_cls = cls.ADAPTERS.get(disk)
        if adapter_cls is None:
            raise UnsupportedStorageDiskError(
                f"storage_disk '{disk}' is not supported. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls(Path(settings.chunks_root))
