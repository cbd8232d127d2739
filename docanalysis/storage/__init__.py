from docanalysis.storage.base import BaseChunkStore
from docanalysis.storage.factory import ChunkStoreFactory
from docanalysis.storage.local_chunk_store import LocalChunkStore

__all__ = ["BaseChunkStore", "ChunkStoreFactory", "LocalChunkStore"]
