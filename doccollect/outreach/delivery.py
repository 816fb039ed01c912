"""
Delivery Gateways

Abstract message delivery behind a single contract:
send(channel, message) -> DeliveryReceipt(success, response_time_hours, sentiment)

Default: Simulated (randomized outcomes, for demos and development)
Fallback: Console (logs the message and reports success)
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .schemas import ChannelType

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReceipt:
    """Result of a delivery attempt as reported by the gateway."""
    success: bool
    response_time_hours: float
    sentiment: float
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "response_time_hours": round(self.response_time_hours, 2),
            "sentiment": round(self.sentiment, 3),
            "message_id": self.message_id,
            "error": self.error,
        }


class DeliveryGateway(ABC):
    """Abstract base class for channel gateways."""

    @abstractmethod
    async def send(self, channel: ChannelType, message: str) -> DeliveryReceipt:
        """Deliver a message on a channel."""
        pass


class SimulatedGateway(DeliveryGateway):
    """
    Simulated gateway.

    Succeeds with probability `success_rate`, reports a response time of up
    to 24 hours and a sentiment in [-1, 1]. Pass `seed` for reproducible runs.
    """

    def __init__(
        self,
        success_rate: float = 0.8,
        seed: Optional[int] = None,
        latency_seconds: float = 0.0,
    ):
        self.success_rate = success_rate
        self.latency_seconds = latency_seconds
        self._random = random.Random(seed)

    async def send(self, channel: ChannelType, message: str) -> DeliveryReceipt:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        success = self._random.random() < self.success_rate
        receipt = DeliveryReceipt(
            success=success,
            response_time_hours=self._random.random() * 24,
            sentiment=self._random.random() * 2 - 1,
            message_id=f"sim-{channel.value}-{self._random.getrandbits(32):08x}",
        )
        logger.debug(f"Simulated {channel.value} delivery: success={success}")
        return receipt


class ConsoleGateway(DeliveryGateway):
    """
    Console gateway for development/testing.

    Logs messages instead of sending them.
    """

    async def send(self, channel: ChannelType, message: str) -> DeliveryReceipt:
        logger.info(
            f"\n{'='*60}\n"
            f"{channel.value.upper()} (Console Mode)\n"
            f"{'='*60}\n"
            f"{message}\n"
            f"{'='*60}\n"
        )
        return DeliveryReceipt(
            success=True,
            response_time_hours=0.0,
            sentiment=0.0,
            message_id="console-dev",
        )


def get_delivery_gateway(
    console_mode: bool = False,
    success_rate: float = 0.8,
    seed: Optional[int] = None,
) -> DeliveryGateway:
    """
    Get the appropriate delivery gateway based on configuration.

    Priority:
    1. Console mode (for local development)
    2. Simulated gateway
    """
    if console_mode:
        logger.info("Using console delivery gateway")
        return ConsoleGateway()

    logger.info(f"Using simulated delivery gateway (success_rate={success_rate})")
    return SimulatedGateway(success_rate=success_rate, seed=seed)
