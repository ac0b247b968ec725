"""
HTTP SMS Gateway
================
Adapter for a form-POST SMS web service (Asanak-style REST panel).

Each send is retried with exponential backoff and jitter, every attempt has
a hard timeout, and a final give-up is logged and returned as a failed
SendResult.
"""

from typing import Optional

import httpx
import structlog

from ..config import GatewayConfig
from ..exceptions import DeliveryError, DeliveryTimeout, RetryExhausted
from ..phone import mask_phone, normalize_phone
from .base import MessageChannel, MessageStatus, SendResult
from .retry import retry_with_backoff

logger = structlog.get_logger(__name__)

MAX_BODY_WARNING_LENGTH = 1000


class HttpSmsGateway(MessageChannel):
    """
    SMS gateway adapter over httpx.

    Usage:
        gateway = HttpSmsGateway(GatewayConfig.from_env())
        await gateway.initialize()
        result = await gateway.send("+989123456789", "Your login code: 123456")
    """

    name = "http_sms"

    def __init__(self, config: GatewayConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config: Gateway settings
            client: Pre-built client (tests inject one with a MockTransport)
        """
        self.config = config
        self._client = client
        self._owns_client = client is None

    async def initialize(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                headers={"Accept": "application/json, text/plain, */*"},
            )
            self._owns_client = True
        await super().initialize()

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        await super().close()

    def _map_exception(self, exc: httpx.HTTPError) -> DeliveryError:
        """Map httpx exceptions to delivery errors."""
        if isinstance(exc, httpx.TimeoutException):
            return DeliveryTimeout("Gateway request timed out")
        if isinstance(exc, httpx.HTTPStatusError):
            return DeliveryError(
                f"Gateway returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            )
        return DeliveryError(f"Gateway unreachable: {exc}")

    async def _post_once(self, destination: str, source: str, body: str) -> httpx.Response:
        try:
            response = await self._client.post(
                self.config.send_path,
                data={
                    "username": self.config.username,
                    "password": self.config.password,
                    "source": source,
                    "destination": destination,
                    "message": body,
                },
            )
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            raise self._map_exception(e)

    async def send(self, destination: str, body: str) -> SendResult:
        """Send an SMS through the gateway. Never raises."""
        masked = mask_phone(destination)

        if not self.config.enabled:
            logger.info("SMS sending disabled by configuration", destination=masked)
            return SendResult(success=True, status=MessageStatus.SKIPPED, attempts=0)

        if not self.config.username or not self.config.password:
            logger.error("SMS gateway credentials are missing", destination=masked)
            return SendResult(
                success=False,
                status=MessageStatus.REJECTED,
                attempts=0,
                error_code="CREDENTIALS_MISSING",
            )

        if not self.config.source_number:
            logger.error("SMS gateway source number is missing", destination=masked)
            return SendResult(
                success=False,
                status=MessageStatus.REJECTED,
                attempts=0,
                error_code="SOURCE_MISSING",
            )

        normalized = normalize_phone(destination)
        if not normalized or not body:
            logger.warning(
                "Destination or body invalid, SMS not sent",
                destination=masked,
                length=len(body or ""),
            )
            return SendResult(
                success=False,
                status=MessageStatus.REJECTED,
                attempts=0,
                error_code="INVALID_MESSAGE",
            )

        if len(body) > MAX_BODY_WARNING_LENGTH:
            logger.warning("SMS body is long", destination=masked, length=len(body))

        source = normalize_phone(self.config.source_number) or self.config.source_number

        if self._client is None:
            await self.initialize()

        attempts = 0

        async def attempt() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return await self._post_once(normalized, source, body)

        try:
            response = await retry_with_backoff(
                attempt,
                max_attempts=self.config.max_attempts,
                base_delay=self.config.base_delay_seconds,
                max_delay=self.config.max_delay_seconds,
                attempt_timeout=self.config.timeout_seconds,
                retryable_exceptions={DeliveryError},
            )
        except RetryExhausted as e:
            logger.critical(
                "SMS permanently failed",
                destination=masked,
                attempts=attempts,
                error=str(e.last_exception or e),
            )
            status_code = getattr(e.last_exception, "status_code", None)
            return SendResult(
                success=False,
                status=MessageStatus.FAILED,
                attempts=attempts,
                error_code=str(status_code) if status_code else "RETRY_EXHAUSTED",
                error_message=str(e.last_exception or e),
            )

        raw = None
        try:
            payload = response.json()
            raw = payload if isinstance(payload, dict) else {"data": payload}
        except ValueError:
            raw = {"text": response.text[:500]}

        logger.info(
            "SMS sent",
            destination=masked,
            attempts=attempts,
            status_code=response.status_code,
            length=len(body),
        )
        return SendResult(
            success=True,
            status=MessageStatus.SENT,
            attempts=attempts,
            raw_response=raw,
        )
