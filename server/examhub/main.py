import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examhub.config import Settings
from examhub.database import Database
from examhub.errors import register_error_handlers
from examhub.generators.factory import build_generators
from examhub.routes import exam, mcq, quran
from examhub.services.exam_cache import ExamCache
from examhub.services.llm_service import LLMService
from examhub.services.prompt_management import PromptLibrary
from examhub.services.quran_api import QuranApiClient

logger = logging.getLogger(__name__)

_UNSET = object()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    exam_cache=_UNSET,
) -> FastAPI:
    """
    Build the application.

    `transport` replaces the network for the outbound HTTP client and
    `exam_cache` replaces the Redis cache built from settings; both exist for
    tests.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings)
        database.init_db()
        app.state.database = database

        cache = ExamCache.from_settings(settings) if exam_cache is _UNSET else exam_cache
        app.state.exam_cache = cache

        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds, transport=transport)
        llm = LLMService(settings, http_client)
        app.state.generators = build_generators(llm, PromptLibrary(settings.prompts_dir))
        app.state.quran_api = QuranApiClient(settings, http_client)

        logger.info("%s is starting (database: %s, llm: %s)",
                    settings.app_name, database.engine.dialect.name, settings.llm_provider)
        try:
            yield
        finally:
            await llm.close()
            await http_client.aclose()
            if cache is not None:
                cache.close()
            database.dispose()
            logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.api_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    app.include_router(exam.router, prefix="/exam", tags=["Exam"])
    app.include_router(mcq.router, prefix="/mcq", tags=["MCQ"])
    app.include_router(quran.router, prefix="/quran", tags=["Quran"])
    return app


app = create_app()
