"""Outbound alert transports.

Every sender exposes ``async send(text) -> bool``. A ``False`` return means
the alert did not go out; the caller keeps its debounce marker untouched so
the next cycle retries.
"""

from typing import Protocol

import aiohttp

from agent_health.shared.logger import get_agent_logger
from agent_health.shared.openclaw import OpenClawCLI


class AlertSender(Protocol):
    async def send(self, text: str) -> bool: ...


class OpenClawAlertSender:
    """Deliver alerts through ``openclaw gateway wake``."""

    def __init__(self, cli: OpenClawCLI | None = None):
        self._cli = cli or OpenClawCLI()
        self.logger = get_agent_logger("alerts")

    async def send(self, text: str) -> bool:
        result = await self._cli.wake(text)
        if not result.success:
            self.logger.warning(
                f"openclaw gateway wake failed: {result.output}",
                extra={"agent_data": result.to_dict()},
            )
            return False
        return True


class GatewayAlertSender:
    """Deliver alerts straight to the OpenClaw gateway WebSocket."""

    def __init__(self, gateway_url: str = "ws://127.0.0.1:18789", gateway_token: str = "", timeout: float = 10.0):
        self._gateway_url = gateway_url
        self._gateway_token = gateway_token
        self._timeout = timeout
        self.logger = get_agent_logger("alerts")

    async def send(self, text: str) -> bool:
        headers = {}
        if self._gateway_token:
            headers["Authorization"] = f"Bearer {self._gateway_token}"

        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(self._gateway_url, headers=headers) as ws:
                    await ws.send_json({"type": "wake", "text": text, "mode": "now"})
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            self.logger.warning(f"Gateway alert failed: {e}")
            return False
        return True


def build_alert_sender(config: dict) -> AlertSender:
    """Create the transport named by ``alert_transport``."""
    transport = config.get("alert_transport", "openclaw")
    if transport == "openclaw":
        return OpenClawAlertSender()
    if transport == "gateway":
        return GatewayAlertSender(
            gateway_url=config.get("gateway_url", "ws://127.0.0.1:18789"),
            gateway_token=config.get("gateway_token", ""),
        )
    raise ValueError(f"Unknown alert transport: {transport}")
