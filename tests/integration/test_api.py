"""
Integration Tests: API Endpoints

Exercise the HTTP surface end to end over the in-memory store: routing,
request validation, error mapping and response shapes.
"""

import pytest

from config.settings import MonitoringSettings

pytestmark = pytest.mark.integration


# =============================================================================
# Root and Health Endpoints
# =============================================================================

class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "GET /health" in data["endpoints"]
        for route in ("GET /health/detailed", "GET /metrics", "GET /api/cache/expiring", "POST /api/cache/cleanup"):
            assert route in data["endpoints"]

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["redis"] == "connected"
        assert data["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_health_check_redis_down(self, client, fake_store):
        fake_store.fail_on.add("ping")

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["redis"] == "disconnected"

    @pytest.mark.asyncio
    async def test_detailed_health_check(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert "system" in [c["component"] for c in data["components"]]

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client):
        await client.post("/api/cache/set", json={"key": "cache:m", "value": 1, "ttl": 10})

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "# TYPE cache_operations_total counter" in response.text

    @pytest.mark.asyncio
    async def test_metrics_disabled(self, app, client, test_settings):
        app.state.settings = test_settings.model_copy(
            update={"monitoring": MonitoringSettings(metrics_enabled=False)}
        )

        response = await client.get("/metrics")

        assert response.status_code == 404


# =============================================================================
# Bloom Filter Endpoints
# =============================================================================

class TestBloomEndpoints:

    @pytest.mark.asyncio
    async def test_create_add_check(self, client, fake_store):
        response = await client.post(
            "/api/bloom/create",
            json={"name": "user_emails", "errorRate": 0.001, "capacity": 10000, "ttl": 7200}
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "name": "user_emails",
            "errorRate": 0.001,
            "capacity": 10000,
            "ttl": 7200,
        }
        assert await fake_store.ttl("user_emails") == 7200

        added = await client.post("/api/bloom/user_emails/add", json={"items": ["a@x.io", "b@x.io"]})
        assert added.json()["results"] == [True, True]

        checked = await client.post("/api/bloom/user_emails/check", json={"items": ["a@x.io", "c@x.io"]})
        assert checked.json()["results"] == [True, False]

    @pytest.mark.asyncio
    async def test_single_item_returns_bool(self, client):
        await client.post("/api/bloom/create", json={"name": "f"})

        added = await client.post("/api/bloom/f/add", json={"items": "one"})
        checked = await client.post("/api/bloom/f/check", json={"items": "one"})

        assert added.json()["results"] is True
        assert checked.json()["results"] is True

    @pytest.mark.asyncio
    async def test_defaults_applied(self, client, fake_store):
        await client.post("/api/bloom/create", json={"name": "f"})

        assert fake_store.filter_params["f"] == {"error_rate": 0.01, "capacity": 10000}

    @pytest.mark.asyncio
    async def test_duplicate_filter_conflict(self, client):
        await client.post("/api/bloom/create", json={"name": "f"})

        response = await client.post("/api/bloom/create", json={"name": "f"})

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "AlreadyExists"

    @pytest.mark.asyncio
    async def test_invalid_error_rate(self, client, fake_store):
        response = await client.post("/api/bloom/create", json={"name": "f", "errorRate": 1.5})

        assert response.status_code == 400
        assert "error_rate" in response.json()["error"]["message"]
        assert "filter_reserve" not in fake_store.calls

    @pytest.mark.asyncio
    async def test_missing_filter(self, client):
        response = await client.post("/api/bloom/ghost/check", json={"items": ["x"]})

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NotFound"

    @pytest.mark.asyncio
    async def test_demo(self, client):
        first = await client.post("/api/demo/bloom")
        second = await client.post("/api/demo/bloom")

        assert first.status_code == 200
        assert second.status_code == 200
        data = second.json()
        assert data["name"] == "demo:search"
        assert data["checked"] == [
            {"term": "redis", "exists": True},
            {"term": "mysql", "exists": False},
            {"term": "cache", "exists": True},
            {"term": "unknown", "exists": False},
        ]


# =============================================================================
# Cache Endpoints
# =============================================================================

class TestCacheEndpoints:

    @pytest.mark.asyncio
    async def test_set_get_with_refresh(self, client, fake_store):
        response = await client.post(
            "/api/cache/set",
            json={"key": "cache:user:1", "value": {"name": "John"}, "ttl": 300}
        )
        assert response.json() == {"success": True}

        fake_store.advance(200)
        response = await client.get("/api/cache/cache:user:1", params={"refreshTTL": 300})

        assert response.json() == {"success": True, "value": {"name": "John"}}
        assert await fake_store.ttl("cache:user:1") == 300

    @pytest.mark.asyncio
    async def test_missing_key_returns_null(self, client):
        response = await client.get("/api/cache/cache:none")

        assert response.status_code == 200
        assert response.json()["value"] is None

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, client, fake_store):
        await client.post("/api/cache/set", json={"key": "cache:temp:x", "value": "v"})

        assert await fake_store.ttl("cache:temp:x") == -1

    @pytest.mark.asyncio
    async def test_zero_ttl_rejected(self, client, fake_store):
        response = await client.post("/api/cache/set", json={"key": "k", "value": 1, "ttl": 0})

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "InvalidArgument"
        assert fake_store.data == {}

    @pytest.mark.asyncio
    async def test_missing_body_field(self, client):
        response = await client.post("/api/cache/set", json={"value": 1})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_by_pattern(self, client):
        for i in range(3):
            await client.post("/api/cache/set", json={"key": f"cache:user:{i}", "value": i, "ttl": 60})
        await client.post("/api/cache/set", json={"key": "cache:other", "value": 0})

        response = await client.delete("/api/cache/cache:user:*")

        assert response.json() == {"success": True, "deletedCount": 3}

    @pytest.mark.asyncio
    async def test_cleanup(self, client):
        await client.post("/api/cache/set", json={"key": "cache:temp:a", "value": 1})
        await client.post("/api/cache/set", json={"key": "cache:temp:b", "value": 1, "ttl": 60})

        response = await client.post("/api/cache/cleanup", json={"pattern": "cache:temp:*"})

        assert response.json()["deletedCount"] == 1

    @pytest.mark.asyncio
    async def test_stats(self, client):
        response = await client.get("/api/cache/stats")

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["memory"]["used_memory_human"] == "1.00M"
        assert set(stats) == {"memory", "keyspace", "stats"}

    @pytest.mark.asyncio
    async def test_expiring(self, client):
        await client.post("/api/cache/set", json={"key": "cache:soon", "value": 1, "ttl": 10})
        await client.post("/api/cache/set", json={"key": "cache:later", "value": 1, "ttl": 600})

        response = await client.get("/api/cache/expiring", params={"threshold": 30})

        assert response.json()["keys"] == [{"key": "cache:soon", "ttl": 10}]

    @pytest.mark.asyncio
    async def test_expiring_rejects_zero_threshold(self, client):
        await client.post("/api/cache/set", json={"key": "cache:soon", "value": 1, "ttl": 10})

        response = await client.get("/api/cache/expiring", params={"threshold": 0})

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "InvalidArgument"

    @pytest.mark.asyncio
    async def test_store_unavailable(self, client, fake_store):
        fake_store.fail_on.add("get")

        response = await client.get("/api/cache/cache:user:1")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["type"] == "StoreUnavailable"
        assert error["hint"] == "Cache store unavailable"

    @pytest.mark.asyncio
    async def test_request_id_header_accepted(self, client):
        response = await client.get("/api/cache/stats", headers={"X-Request-ID": "req-42"})

        assert response.status_code == 200


# =============================================================================
# Error Handling
# =============================================================================

class TestErrorHandling:

    @pytest.mark.asyncio
    async def test_unexpected_error_is_sanitized(self, client, fake_store):
        async def broken(section):
            raise RuntimeError("secret internals")

        fake_store.info = broken

        response = await client.get("/api/cache/stats")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["message"] == "An error occurred processing your request"
        assert "traceback" not in error

    @pytest.mark.asyncio
    async def test_manager_not_initialized(self, app, client):
        app.state.cache_manager = None

        response = await client.get("/health")

        assert response.status_code == 503
