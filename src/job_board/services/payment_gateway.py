"""
Payment Gateway - Abstract interface for one-off payment processors
Supports Stripe (PaymentIntents) and Paystack (transactions)
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
import enum
import logging

from ..exceptions import PaymentDeclined, PaymentProcessorError, PaymentProcessorUnavailable

logger = logging.getLogger(__name__)


class ProcessorStatus(str, enum.Enum):
    """Normalised processor-side status of a transaction"""
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    FAILED = "failed"


class PaymentGateway(ABC):
    """Abstract base class for payment processors"""

    provider: str = ""

    @abstractmethod
    def create_transaction(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Open a transaction for amount_cents

        Returns:
            {"transaction_id": str, "client_token": str}
        """
        pass

    @abstractmethod
    def get_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        """
        Authoritative status of a transaction

        Returns:
            {"status": ProcessorStatus, "amount_cents": int, "currency": str}
        """
        pass

    @abstractmethod
    def cancel_transaction(self, transaction_id: str) -> None:
        """Cancel a transaction that will no longer be honored"""
        pass


class StripeGateway(PaymentGateway):
    """Stripe PaymentIntents gateway"""

    provider = "stripe"

    # PaymentIntent.status -> normalised status
    STATUS_MAP = {
        "succeeded": ProcessorStatus.SUCCEEDED,
        "processing": ProcessorStatus.PROCESSING,
        "requires_capture": ProcessorStatus.PROCESSING,
        "requires_action": ProcessorStatus.REQUIRES_ACTION,
        "requires_confirmation": ProcessorStatus.REQUIRES_ACTION,
        "requires_payment_method": ProcessorStatus.REQUIRES_ACTION,
        "canceled": ProcessorStatus.FAILED,
    }

    def __init__(self, api_key: str, timeout_seconds: float = 10.0, is_test: bool = False):
        """
        Initialize Stripe gateway

        Args:
            api_key: Stripe API key (test or live)
            timeout_seconds: Upper bound for each HTTP call to Stripe
            is_test: Whether using test mode
        """
        import stripe
        self.stripe = stripe
        self.stripe.api_key = api_key
        # Retries are owned by the payment orchestrator
        self.stripe.max_network_retries = 0
        self.stripe.default_http_client = self.stripe.RequestsClient(timeout=timeout_seconds)
        self.is_test = is_test

    def _translate_error(self, exc: Exception, action: str) -> Exception:
        error = self.stripe.error
        if isinstance(exc, (error.APIConnectionError, error.RateLimitError)):
            logger.warning(f"Stripe {action} failed (transient): {exc}")
            return PaymentProcessorUnavailable()
        if isinstance(exc, error.CardError):
            logger.info(f"Stripe {action} declined: {getattr(exc, 'code', None)}")
            return PaymentDeclined()
        if isinstance(exc, error.APIError):
            logger.warning(f"Stripe {action} failed (API error): {exc}")
            return PaymentProcessorUnavailable()
        logger.error(f"Stripe {action} failed: {exc}")
        return PaymentProcessorError()

    def create_transaction(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a Stripe PaymentIntent"""
        try:
            intent = self.stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                metadata={key: str(value) for key, value in metadata.items()},
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            )
        except self.stripe.error.StripeError as e:
            raise self._translate_error(e, "payment intent creation")

        return {
            "transaction_id": intent.id,
            "client_token": intent.client_secret,
        }

    def get_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        """Retrieve a Stripe PaymentIntent"""
        try:
            intent = self.stripe.PaymentIntent.retrieve(transaction_id)
        except self.stripe.error.StripeError as e:
            raise self._translate_error(e, "payment intent retrieval")

        status = self.STATUS_MAP.get(intent.status, ProcessorStatus.PROCESSING)
        # A payment method that was tried and refused leaves the intent
        # back in requires_payment_method with last_payment_error set
        if intent.status == "requires_payment_method" and getattr(intent, "last_payment_error", None):
            status = ProcessorStatus.FAILED

        amount = intent.amount
        if intent.status == "succeeded" and getattr(intent, "amount_received", None):
            amount = intent.amount_received

        return {
            "status": status,
            "amount_cents": int(amount),
            "currency": str(intent.currency).lower(),
        }

    def cancel_transaction(self, transaction_id: str) -> None:
        """Cancel a Stripe PaymentIntent"""
        try:
            self.stripe.PaymentIntent.cancel(transaction_id)
        except self.stripe.error.StripeError as e:
            raise self._translate_error(e, "payment intent cancellation")


class PaystackGateway(PaymentGateway):
    """Paystack transaction gateway"""

    provider = "paystack"

    STATUS_MAP = {
        "success": ProcessorStatus.SUCCEEDED,
        "failed": ProcessorStatus.FAILED,
        "reversed": ProcessorStatus.FAILED,
        "abandoned": ProcessorStatus.REQUIRES_ACTION,
        "ongoing": ProcessorStatus.PROCESSING,
        "pending": ProcessorStatus.PROCESSING,
        "processing": ProcessorStatus.PROCESSING,
        "queued": ProcessorStatus.PROCESSING,
    }

    def __init__(self, secret_key: str, timeout_seconds: float = 10.0, is_test: bool = False):
        """
        Initialize Paystack gateway

        Args:
            secret_key: Paystack secret key (test or live)
            timeout_seconds: Upper bound for each HTTP call to Paystack
            is_test: Whether using test mode
        """
        self.secret_key = secret_key
        self.timeout_seconds = timeout_seconds
        self.is_test = is_test
        self.base_url = "https://api.paystack.co"

    def _make_request(self, method: str, endpoint: str, data: Optional[Dict] = None) -> Dict[str, Any]:
        """Make HTTP request to Paystack API"""
        import httpx

        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json"
        }

        try:
            if method == "GET":
                response = httpx.get(url, headers=headers, timeout=self.timeout_seconds)
            elif method == "POST":
                response = httpx.post(url, headers=headers, json=data or {}, timeout=self.timeout_seconds)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.TransportError as e:
            # Covers timeouts and connection failures
            logger.warning(f"Paystack API request failed (transient): {type(e).__name__}: {e}")
            raise PaymentProcessorUnavailable()

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(f"Paystack API returned {response.status_code} for {endpoint}")
            raise PaymentProcessorUnavailable()
        if response.status_code >= 400:
            logger.error(f"Paystack API rejected {endpoint}: {response.status_code} {response.text[:200]}")
            raise PaymentProcessorError()

        return response.json()

    def create_transaction(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Initialize a Paystack transaction"""
        payload = {
            "email": metadata.get("email", ""),
            "amount": amount_cents,
            "currency": currency.upper(),
            "metadata": metadata,
        }
        if idempotency_key:
            payload["reference"] = idempotency_key

        result = self._make_request("POST", "/transaction/initialize", payload)
        data = result.get("data", {})
        return {
            "transaction_id": data.get("reference", ""),
            "client_token": data.get("access_code", ""),
        }

    def get_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        """Verify a Paystack transaction"""
        result = self._make_request("GET", f"/transaction/verify/{transaction_id}")
        data = result.get("data", {})
        return {
            "status": self.STATUS_MAP.get(data.get("status", ""), ProcessorStatus.PROCESSING),
            "amount_cents": int(data.get("amount", 0)),
            "currency": str(data.get("currency", "")).lower(),
        }

    def cancel_transaction(self, transaction_id: str) -> None:
        """Paystack has no cancel endpoint; unpaid transactions lapse on their own"""
        logger.info(f"Paystack transaction {transaction_id} left to lapse")


def get_payment_gateway(provider: str, config) -> PaymentGateway:
    """
    Factory function to get the appropriate payment gateway

    Args:
        provider: 'stripe' or 'paystack'
        config: Config object with payment provider settings

    Returns:
        PaymentGateway instance
    """
    use_test_keys = config.ENV != "prod"

    if provider == "stripe":
        api_key = config.STRIPE_TEST_SECRET_KEY if use_test_keys else config.STRIPE_SECRET_KEY
        if not api_key:
            raise ValueError("Stripe API key not configured")
        return StripeGateway(api_key, timeout_seconds=config.PAYMENT_TIMEOUT_SECONDS, is_test=use_test_keys)

    elif provider == "paystack":
        secret_key = config.PAYSTACK_TEST_SECRET_KEY if use_test_keys else config.PAYSTACK_SECRET_KEY
        if not secret_key:
            raise ValueError("Paystack secret key not configured")
        return PaystackGateway(secret_key, timeout_seconds=config.PAYMENT_TIMEOUT_SECONDS, is_test=use_test_keys)

    else:
        raise ValueError(f"Unsupported payment provider: {provider}")
