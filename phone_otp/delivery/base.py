"""
Message Channel
===============
Interface to the service that carries OTP messages to the user.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from ..phone import mask_phone

logger = structlog.get_logger(__name__)


class MessageStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class SendResult:
    """Transport-level outcome of a send."""
    success: bool
    status: MessageStatus = MessageStatus.SENT
    attempts: int = 1
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class MessageChannel(ABC):
    """
    Abstract base class for delivery channels.

    Implementations apply their own retry policy and report a final give-up
    as a failed SendResult rather than raising.
    """

    name: str = "base"

    async def initialize(self) -> None:
        """Acquire resources (HTTP clients, ...)."""
        logger.info("Message channel initialized", channel=self.name)

    async def close(self) -> None:
        """Release resources."""
        logger.info("Message channel closed", channel=self.name)

    @abstractmethod
    async def send(self, destination: str, body: str) -> SendResult:
        """
        Send a text message.

        Args:
            destination: Canonical phone number
            body: Message text

        Returns:
            SendResult with the transport outcome
        """
        pass


class LoggingChannel(MessageChannel):
    """
    Development channel: records sends without contacting a gateway.

    Only the masked destination and the body length are logged.
    """

    name = "logging"

    def __init__(self):
        self.sent_count = 0

    async def send(self, destination: str, body: str) -> SendResult:
        self.sent_count += 1
        logger.info(
            "Message send skipped (logging channel)",
            destination=mask_phone(destination),
            length=len(body),
        )
        return SendResult(success=True, status=MessageStatus.SKIPPED, attempts=0)
