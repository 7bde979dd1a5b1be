import logging

from fastapi import FastAPI

from app.core.settings import get_settings
from app.db.init_db import init_db
from app.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup")
        container = ServiceContainer.build(get_settings())
        await init_db(container)
        await container.start()
        app.state.container = container

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        container = getattr(app.state, "container", None)
        if container is not None:
            await container.close()
            app.state.container = None
