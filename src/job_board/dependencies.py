"""
Request-scoped service dependencies
"""
import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import config
from .db import get_db
from .services.payment_gateway import PaymentGateway, get_payment_gateway
from .services.posting_service import PostingService

logger = logging.getLogger(__name__)


def get_payment_gateway_dependency() -> Optional[PaymentGateway]:
    """Configured processor, or None when no keys are set (free plans still work)"""
    try:
        return get_payment_gateway(config.PAYMENT_PROVIDER, config)
    except ValueError as e:
        logger.warning(f"Payment gateway not available: {e}")
        return None


def get_posting_service(
    db: Session = Depends(get_db),
    gateway: Optional[PaymentGateway] = Depends(get_payment_gateway_dependency),
) -> PostingService:
    return PostingService(db, gateway=gateway)
