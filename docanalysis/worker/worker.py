import time

from docanalysis.config.settings import Settings
from docanalysis.logging.logger import Log
from docanalysis.storage.base import BaseChunkStore


class Worker:
    """Poll loop: sleep -> find abandoned uploads -> purge them."""

    def __init__(self, chunk_store: BaseChunkStore, settings: Settings) -> None:
        self._chunk_store = chunk_store
        self._settings = settings

    def run(self, max_sweeps: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_sweeps is set, stop after that many sweeps (for testing).
        """
        Log.info("Worker started, sweeping abandoned uploads")
        sweeps_done = 0
        try:
            while max_sweeps is None or sweeps_done < max_sweeps:
                self.sweep_once()
                sweeps_done += 1
                if max_sweeps is not None and sweeps_done >= max_sweeps:
                    break
                time.sleep(self._settings.sweep_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def sweep_once(self) -> int:
        """Purge every stale upload. Storage errors are logged and retried next sweep."""
        try:
            stale = self._chunk_store.stale_uploads(self._settings.stale_upload_ttl_seconds)
        except Exception as exc:
            Log.warning(f"Storage error while listing uploads, will retry: {exc}")
            return 0

        purged = 0
        for upload_name in stale:
            try:
                self._chunk_store.purge(upload_name)
                self._chunk_store.release_merge(upload_name)
            except Exception as exc:
                Log.warning(f"Could not purge upload '{upload_name}', will retry: {exc}")
                continue
            purged += 1
            Log.info(f"Purged abandoned upload '{upload_name}'")
        if purged:
            Log.info(f"Sweep purged {purged} abandoned uploads")
        return purged
