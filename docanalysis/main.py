from docanalysis.config.settings import Settings
from docanalysis.logging.logger import Log
from docanalysis.storage.factory import ChunkStoreFactory
from docanalysis.worker.worker import Worker


def main() -> None:
    """Entry point: configure logging -> build chunk store -> start sweeper loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    chunk_store = ChunkStoreFactory.create(settings)
    worker = Worker(chunk_store, settings)
    worker.run()


if __name__ == "__main__":
    main()
