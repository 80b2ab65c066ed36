import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arbejdsret import __version__
from arbejdsret.config import get_settings
from arbejdsret.utils.logging import configure_logging
from .deps import get_session_store
from .routers import analyzer, chats, dashboard, termination


@asynccontextmanager
async def lifespan(app: FastAPI):
    # load the chat sessions once, when the app mounts
    store = app.dependency_overrides.get(get_session_store, get_session_store)()
    store.load()
    logging.info(f"Session store ready with {len(store.sessions)} chats")
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Arbejdsret AI Backend",
        description="HR compliance agents: termination letters, document analysis and legal chat.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dashboard.router)
    app.include_router(termination.router)
    app.include_router(analyzer.router)
    app.include_router(chats.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
