import asyncio
import logging

from app.core.settings import settings
from app.services.container import ServiceContainer

logger = logging.getLogger(__name__)


async def init_db(container: ServiceContainer) -> None:
    """
    Create the data directory and load every entity document once.

    Missing documents are written with their defaults; a corrupt one raises
    StorageCorruption so the application refuses to start on top of it.
    """
    container.data_dir.mkdir(parents=True, exist_ok=True)
    for store in container.entity_stores:
        await store.read()
        logger.info("Loaded entity document %s", store.path)


async def _main() -> None:
    container = ServiceContainer.build(settings)
    await init_db(container)
    await container.close(drain=False)


if __name__ == "__main__":
    asyncio.run(_main())
