"""Health reporting and slot control endpoint for dsky-bridge."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Optional

from aiohttp import web

from . import __version__
from .core.models import ModeSelector

if TYPE_CHECKING:
    from .server import BridgeServer

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ComponentStatus:
    """Last reported condition of one collaborator (bridge, telemetry, uplink ...)."""

    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }


@dataclass(slots=True)
class AgentStatus:
    state: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=_utcnow)


class HealthReporter:
    """Collects component statuses and the supervisor state.

    The overall status is ``ok`` only while every component and the
    supervisor report healthy.
    """

    def __init__(self) -> None:
        self._components: Dict[str, ComponentStatus] = {}
        self._agent: Optional[AgentStatus] = None
        self._lock = asyncio.Lock()

    async def update(
        self, name: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            previous = self._components.get(name)
            self._components[name] = ComponentStatus(
                name=name, healthy=healthy, detail=detail
            )

        if previous is not None and previous.healthy != healthy:
            LOGGER.info(
                "Component %s is now %s%s",
                name,
                "healthy" if healthy else "unhealthy",
                f" ({detail})" if detail else "",
            )

    async def set_agent_state(
        self, state: str, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._agent = AgentStatus(state=state, healthy=healthy, detail=detail)

    async def component(self, name: str) -> Optional[ComponentStatus]:
        async with self._lock:
            return self._components.get(name)

    async def snapshot(self) -> Dict[str, object]:
        async with self._lock:
            components = sorted(self._components.values(), key=lambda item: item.name)
            agent = self._agent

        healthy = all(item.healthy for item in components)
        if agent is not None and not agent.healthy:
            healthy = False

        payload: Dict[str, object] = {
            "status": "ok" if healthy else "degraded",
            "version": __version__,
            "components": [item.as_dict() for item in components],
        }
        if agent is not None:
            payload["agentState"] = {
                "state": agent.state,
                "healthy": agent.healthy,
                "detail": agent.detail if agent.detail is not None else agent.state,
                "updatedAt": agent.updated_at.isoformat(timespec="seconds"),
            }
        return payload


class HealthServer:
    """Small HTTP server exposing `/healthz` and, with a bridge, slot control.

    ``GET /slots`` lists both slots; ``PUT /slots/{slot}/mode`` with a JSON body
    ``{"mode": "cm" | "lm" | "auto"}`` flips a DSKY's mode switch.
    """

    def __init__(
        self,
        reporter: HealthReporter,
        host: str,
        port: int,
        *,
        bridge: Optional["BridgeServer"] = None,
    ) -> None:
        self._reporter = reporter
        self._host = host
        self._port = port
        self._bridge = bridge
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        if self._bridge is not None:
            app.router.add_get("/slots", self._handle_slots)
            app.router.add_put("/slots/{slot}/mode", self._handle_set_mode)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info(
            "Health endpoint listening on http://%s:%s/healthz", self._host, self._port
        )

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = await self._reporter.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)

    async def _handle_slots(self, request: web.Request) -> web.Response:
        assert self._bridge is not None
        return web.json_response({"slots": await self._bridge.slots()})

    async def _handle_set_mode(self, request: web.Request) -> web.Response:
        assert self._bridge is not None
        try:
            slot = int(request.match_info["slot"])
            body = await request.json()
            mode = ModeSelector.parse(str(body.get("mode", "")))
            await self._bridge.set_mode(slot, mode)
        except (ValueError, AttributeError) as exc:
            return web.json_response({"error": str(exc)}, status=400)

        return web.json_response({"slots": await self._bridge.slots()})
