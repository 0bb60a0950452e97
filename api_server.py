"""
Job Board API server entry point
Run with: python api_server.py (or uvicorn job_board.app:app)
"""
import os
import sys
import logging

# Allow running from a source checkout without installing the package
src_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if os.path.exists(src_path) and src_path not in sys.path:
    sys.path.insert(0, src_path)

from job_board.app import app  # noqa: E402
from job_board.config import config  # noqa: E402

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    import uvicorn

    logger.info("=" * 50)
    logger.info("Job Board API - Starting Up")
    logger.info("=" * 50)
    logger.info(f"ENV: {config.ENV}")
    logger.info(f"PORT: {config.PORT}")
    logger.info(f"DATABASE_URL: {'SQLite' if config.is_sqlite else 'PostgreSQL'}")
    logger.info(f"Payment provider: {config.PAYMENT_PROVIDER}")
    logger.info(f"Health check endpoint: http://0.0.0.0:{config.PORT}/health")
    logger.info("=" * 50)

    try:
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=config.PORT,
            log_config=None,  # Keep the structured logging set up by create_app
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)
