import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentcash import __version__
from agentcash.core.container import ApplicationContainer, get_container
from agentcash.core.logging import configure_logging
from agentcash.infrastructure.database.session import init_db
from agentcash.interfaces.http import create_api_router, health
from agentcash.interfaces.http.errors import register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    container.init_infrastructure()
    await init_db(container.engine)
    if container.settings.expiry.enabled:
        container.build_sweeper().start()
    logger.info("%s %s ready", container.settings.project_name, __version__)
    yield
    await container.shutdown()


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or get_container()
    configure_logging(container.settings)

    app = FastAPI(
        title=container.settings.project_name,
        description="Cash request and approval service for agent networks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(create_api_router(container.settings.api_prefix))
    app.include_router(health.router)
    return app


app = create_app()
