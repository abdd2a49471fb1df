from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flightlog.api.routes_flights import router as flights_router
from flightlog.api.routes_settings import router as settings_router
from flightlog.config import Settings, setup_logging
from flightlog.context import AppContext, build_context

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None, context: Optional[AppContext] = None
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown"""
        ctx = context or build_context(settings or Settings())
        setup_logging(ctx.settings.log_level, ctx.settings.resolved_log_file)
        logger.info("Starting application...")
        await ctx.start()
        app.state.context = ctx

        yield

        logger.info("Shutting down application...")
        await ctx.close()

    app = FastAPI(lifespan=lifespan)

    # Frontend dev servers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:1420",
            "http://127.0.0.1:1420",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(flights_router)
    app.include_router(settings_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()
