"""
FastAPI application factory for the Job Board service
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import config
from .exceptions import register_exception_handlers
from .logging_config import RequestIDMiddleware, setup_logging
from .application_routes import router as application_router
from .auth_routes import router as auth_router
from .posting_routes import router as posting_router
from .pricing_routes import router as pricing_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler_started = False
    if config.ENABLE_SCHEDULER:
        from .services.scheduled_jobs import start_scheduler
        start_scheduler()
        scheduler_started = True
    else:
        logger.info("Background scheduler disabled (ENABLE_SCHEDULER=false)")

    try:
        yield
    finally:
        if scheduler_started:
            from .services.scheduled_jobs import stop_scheduler
            stop_scheduler()


def create_app() -> FastAPI:
    setup_logging(config.ENV, config.LOG_LEVEL)

    app = FastAPI(title="Job Board API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it wraps CORS and sees every request first
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(pricing_router)
    app.include_router(posting_router)
    app.include_router(application_router)

    @app.get("/health")
    async def health():
        """Health check endpoint for load balancers and monitoring"""
        return {"status": "healthy", "service": "job-board", "env": config.ENV}

    logger.info(f"Job Board API configured (env={config.ENV}, payment_provider={config.PAYMENT_PROVIDER})")
    return app


app = create_app()
