"""
TreeSync API Main Application.

FastAPI application with CORS, error handling, and lifecycle management.
Requires Python 3.11+.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_event_loop, get_store, set_event_loop, set_store
from mirror.scanner import Scanner
from mirror.store import MirrorStore
from utils.config import get_settings
from utils.logger import bind_log_context, clear_log_context, configure_logging, get_logger
from watcher.event_loop import ChangeEventLoop
from watcher.file_watcher import FileWatcher


# Initialize logging
configure_logging()
logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Scans the watched root, then runs the file watcher and the change
    event loop until shutdown. A failing initial scan aborts startup.
    """
    from api.routes.websocket import get_hub

    settings = get_settings()
    root_path = settings.mirror.resolved_root
    bind_log_context(root=str(root_path))
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    scanner = Scanner()
    root = await asyncio.to_thread(scanner.scan, str(root_path), settings.mirror.display_name)
    store = MirrorStore(root)
    set_store(store)
    logger.info("initial_scan_completed", name=root.name)

    watcher: FileWatcher | None = None
    task: asyncio.Task[None] | None = None
    if settings.watcher.enabled:
        watcher = FileWatcher(root_path)
        watcher.start()
        event_loop = ChangeEventLoop(store, get_hub(), scanner)
        set_event_loop(event_loop)
        task = asyncio.create_task(event_loop.run(watcher.events()))

    yield

    # Cleanup
    logger.info("shutting_down_application")
    if watcher is not None:
        watcher.stop()
    event_loop = get_event_loop()
    if event_loop is not None:
        event_loop.stop()
    if task is not None:
        with suppress(asyncio.CancelledError):
            await task
    set_event_loop(None)
    set_store(None)
    clear_log_context("root")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Live mirror of a directory tree",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "An unexpected error occurred",
            },
        )

    # Health check endpoint
    @application.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        from api.routes.websocket import get_hub

        store = get_store()
        event_loop = get_event_loop()
        return {
            "status": "healthy" if store is not None else "starting",
            "version": settings.app_version,
            "root": store.snapshot().path if store is not None else None,
            "generation": store.generation if store is not None else 0,
            "event_loop": event_loop.state.value if event_loop is not None else "disabled",
            "observer_attached": get_hub().has_observer,
        }

    # Import and include routers here to avoid circular imports
    from api.routes import tree, websocket

    application.include_router(tree.router, prefix="/tree", tags=["Tree"])
    application.include_router(websocket.router, prefix="/ws", tags=["WebSocket"])

    return application


# Create the application instance
app = create_app()
