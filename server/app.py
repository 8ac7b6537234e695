"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.routes import health, search
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler: build (if needed), start and stop the orchestrator."""
    logger.info("FastAPI server starting up")

    if app.state.orchestrator is None:
        from orchestrator.factory import create_search_orchestrator_from_env

        app.state.orchestrator = create_search_orchestrator_from_env()

    app.state.orchestrator.start()

    yield

    logger.info("FastAPI server shutting down")
    app.state.orchestrator.shutdown()


def create_app(orchestrator=None) -> FastAPI:
    """
    Factory function to create the FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator (tests); built from env at startup otherwise
    """
    app = FastAPI(
        title="Search Orchestrator API",
        description="Context-aware web search across multiple providers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(search.router)

    return app
