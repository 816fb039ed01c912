"""
Tests for the delivery gateways.
"""

import pytest

from doccollect.outreach.delivery import (
    ConsoleGateway,
    DeliveryGateway,
    DeliveryReceipt,
    SimulatedGateway,
    get_delivery_gateway,
)
from doccollect.outreach.schemas import ChannelType


class EchoGateway(DeliveryGateway):
    async def send(self, channel, message):
        return DeliveryReceipt(success=True, response_time_hours=0.5, sentiment=0.1)


class TestGateways:

    @pytest.mark.asyncio
    async def test_send_is_the_whole_contract(self):
        receipt = await EchoGateway().send(ChannelType.SMS, "hello")
        assert receipt.success is True

    @pytest.mark.asyncio
    async def test_simulated_gateway_is_reproducible_with_seed(self):
        first = SimulatedGateway(seed=42)
        second = SimulatedGateway(seed=42)

        for _ in range(5):
            a = await first.send(ChannelType.EMAIL, "hi")
            b = await second.send(ChannelType.EMAIL, "hi")
            assert a == b
            assert 0.0 <= a.response_time_hours <= 24.0
            assert -1.0 <= a.sentiment <= 1.0

    @pytest.mark.asyncio
    async def test_simulated_success_rate_bounds(self):
        never = SimulatedGateway(success_rate=0.0, seed=1)
        always = SimulatedGateway(success_rate=1.0, seed=1)

        assert (await never.send(ChannelType.SMS, "x")).success is False
        assert (await always.send(ChannelType.SMS, "x")).success is True

    @pytest.mark.asyncio
    async def test_console_gateway_always_succeeds(self):
        receipt = await ConsoleGateway().send(ChannelType.PORTAL, "Document request waiting")
        assert receipt.success is True
        assert receipt.message_id == "console-dev"

    def test_factory_picks_console_mode(self):
        assert isinstance(get_delivery_gateway(console_mode=True), ConsoleGateway)
        gateway = get_delivery_gateway(success_rate=0.5, seed=3)
        assert isinstance(gateway, SimulatedGateway)
        assert gateway.success_rate == 0.5
