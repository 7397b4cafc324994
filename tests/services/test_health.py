"""Health routes — liveness, database readiness, ingestor readiness."""

from x402_indexer.main import app


class _StubIngestor:
    def __init__(self, running: bool, last_error: str | None = None):
        self._status = {"running": running, "last_error": last_error, "cycles_run": 1}

    def status(self) -> dict:
        return self._status


async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_ready_with_ingestor_disabled(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"] == {"database": "healthy", "ingestor": "disabled"}


async def test_not_ready_when_ingestor_stopped(client):
    app.state.ingestor = _StubIngestor(running=False)
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 503
    assert res.json()["reason"] == "ingestor_stopped"


async def test_ready_but_degraded_after_failed_cycle(client):
    app.state.ingestor = _StubIngestor(running=True, last_error="Chain RPC error")
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["ingestor"] == "degraded"
