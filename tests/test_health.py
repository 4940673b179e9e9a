import aiohttp
import pytest

from dsky_bridge import __version__
from dsky_bridge.core import ModeSelector
from dsky_bridge.health import HealthReporter, HealthServer
from dsky_bridge.server import BridgeServer


class NullSender:
    async def send_key(self, key, is_command_module):
        return None


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("bridge", True, "clients=1")
    await reporter.update("telemetry", False, "stopped")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    component_list = snapshot.get("components", [])
    assert isinstance(component_list, list)
    components = {item["name"]: item for item in component_list}
    assert components["bridge"]["healthy"] is True
    assert components["bridge"]["detail"] == "clients=1"
    assert components["telemetry"]["healthy"] is False
    assert components["telemetry"]["detail"] == "stopped"


@pytest.mark.asyncio
async def test_health_reporter_agent_state_affects_status():
    reporter = HealthReporter()

    await reporter.update("bridge", True)
    await reporter.set_agent_state("degraded", healthy=False)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    agent = snapshot.get("agentState")
    assert agent is not None
    assert agent["state"] == "degraded"
    assert agent["healthy"] is False


@pytest.mark.asyncio
async def test_health_server_serves_snapshot(unused_tcp_port):
    reporter = HealthReporter()
    await reporter.update("bridge", True)

    host = "127.0.0.1"
    port = unused_tcp_port
    server = HealthServer(reporter, host, port)
    await server.start()

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://{host}:{port}/healthz") as response:
                payload = await response.json()
                assert response.status == 200
                assert payload["status"] == "ok"

            async with session.get(f"http://{host}:{port}/slots") as response:
                assert response.status == 404
    finally:
        await server.stop()


@pytest.mark.asyncio
async def test_health_server_controls_slot_modes(unused_tcp_port):
    bridge = BridgeServer(NullSender(), initial_modes={2: ModeSelector.FORCE_LM})
    server = HealthServer(HealthReporter(), "127.0.0.1", unused_tcp_port, bridge=bridge)
    await server.start()
    base = f"http://127.0.0.1:{unused_tcp_port}"

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{base}/slots") as response:
                payload = await response.json()
                assert response.status == 200
                assert [item["mode"] for item in payload["slots"]] == ["auto", "lm"]

            async with session.put(
                f"{base}/slots/1/mode", json={"mode": "cmc"}
            ) as response:
                payload = await response.json()
                assert response.status == 200
                assert payload["slots"][0]["mode"] == "cm"

            async with session.put(
                f"{base}/slots/3/mode", json={"mode": "lm"}
            ) as response:
                assert response.status == 400

            async with session.put(
                f"{base}/slots/2/mode", json={"mode": "sideways"}
            ) as response:
                assert response.status == 400

            async with session.put(
                f"{base}/slots/2/mode", data="not json"
            ) as response:
                assert response.status == 400
    finally:
        await server.stop()

    assert await bridge.mode_of(1) is ModeSelector.FORCE_CM
    assert await bridge.mode_of(2) is ModeSelector.FORCE_LM


@pytest.mark.asyncio
async def test_health_reporter_orders_components_and_reports_version():
    reporter = HealthReporter()

    await reporter.update("uplink", True)
    await reporter.update("bridge", True, "clients=0")
    await reporter.set_agent_state("active", healthy=True, detail="bridge ready")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "ok"
    assert snapshot["version"] == __version__
    assert [item["name"] for item in snapshot["components"]] == ["bridge", "uplink"]
    assert snapshot["agentState"]["state"] == "active"
    assert snapshot["agentState"]["detail"] == "bridge ready"

    bridge = await reporter.component("bridge")
    assert bridge is not None
    assert bridge.detail == "clients=0"
    assert await reporter.component("telemetry") is None
