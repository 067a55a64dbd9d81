"""HTTP-level tests against the app wired to a fake upstream."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from f1_proxy.main import create_app


class TestSystemEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "f1-api-proxy"
        assert body["environment"] == "development"
        assert "uptime" in body
        assert set(body["cache"]) >= {"hits", "misses", "keys"}

    def test_api_info(self, client):
        body = client.get("/api/info").json()

        assert body["name"] == "F1 API Proxy"
        assert "seasons" in body["endpoints"]

    def test_tools(self, client):
        body = client.get("/tools").json()

        assert body["service"] == "f1-api-proxy"
        assert isinstance(body["capabilities"], list)
        assert {tool["name"] for tool in body["endpoints"]} >= {"get_seasons", "get_standings"}


class TestDataEndpoints:
    def test_seasons_envelope_and_caching(self, client, upstream):
        upstream.add("/seasons.json", {"MRData": {"SeasonTable": {"Seasons": []}}})

        first = client.get("/seasons")
        second = client.get("/seasons")

        assert first.status_code == 200
        assert first.json() == {
            "success": True,
            "data": {"MRData": {"SeasonTable": {"Seasons": []}}},
            "meta": {"endpoint": "/seasons", "cached": False},
        }
        assert second.json()["meta"]["cached"] is True
        assert upstream.count("/seasons.json") == 1

    def test_drivers_default_to_current(self, client, upstream):
        upstream.add("/current/drivers.json")

        response = client.get("/drivers")

        assert response.status_code == 200
        assert response.json()["meta"] == {
            "endpoint": "/drivers/current",
            "year": "current",
            "cached": False,
        }

    def test_drivers_and_current_drivers_share_cache_entry(self, client, upstream):
        upstream.add("/current/drivers.json")

        client.get("/drivers")
        response = client.get("/drivers/current")

        assert response.json()["meta"]["cached"] is True
        assert upstream.count("/current/drivers.json") == 1

    @pytest.mark.parametrize(
        "path, upstream_path, meta",
        [
            ("/seasons/2021", "/2021.json", {"year": "2021"}),
            ("/races/2021", "/2021.json", {"year": "2021"}),
            ("/races/2021/3", "/2021/3.json", {"year": "2021", "round": "3"}),
            ("/qualifying/2021/3", "/2021/3/qualifying.json", {"year": "2021", "round": "3"}),
            ("/laps/2021/3", "/2021/3/laps.json", {"year": "2021", "round": "3"}),
            ("/laps/2021/3/7", "/2021/3/laps/7.json", {"year": "2021", "round": "3", "lap": "7"}),
            ("/laps/2021/3?lap=7", "/2021/3/laps/7.json", {"year": "2021", "round": "3", "lap": "7"}),
            ("/pitstops/2021/3", "/2021/3/pitstops.json", {"year": "2021", "round": "3"}),
            ("/drivers/2021/hamilton", "/2021/drivers/hamilton.json",
             {"year": "2021", "driverId": "hamilton"}),
            ("/constructors", "/current/constructors.json", {"year": "current"}),
            ("/constructors/2021/mercedes", "/2021/constructors/mercedes.json",
             {"year": "2021", "constructorId": "mercedes"}),
            ("/standings/2021", "/2021/driverStandings.json", {"year": "2021", "type": "drivers"}),
            ("/standings/2021/constructors", "/2021/constructorStandings.json",
             {"year": "2021", "type": "constructors"}),
            ("/results/2021/3", "/2021/3/results.json", {"year": "2021", "round": "3"}),
        ],
    )
    def test_route_maps_to_upstream_resource(self, client, upstream, path, upstream_path, meta):
        upstream.add(upstream_path, {"MRData": {"ok": True}})

        response = client.get(path)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"MRData": {"ok": True}}
        assert {k: v for k, v in body["meta"].items() if k not in ("endpoint", "cached")} == meta
        assert upstream.calls == [upstream_path]


class TestValidation:
    def test_invalid_year(self, client, upstream):
        response = client.get("/races/invalid")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["status"] == 400
        assert error["details"] == [
            {"field": "year", "message": 'Year must be a 4-digit year or "current"'}
        ]
        assert upstream.calls == []

    def test_invalid_standings_type(self, client):
        response = client.get("/standings/2023/invalid-type")

        assert response.status_code == 400
        assert [d["field"] for d in response.json()["error"]["details"]] == ["type"]

    def test_every_failing_field_reported(self, client):
        response = client.get("/laps/20x/first/last")

        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["error"]["details"]}
        assert fields == {"year", "round", "lap"}

    def test_invalid_query_lap(self, client):
        response = client.get("/laps/2023/5?lap=abc")

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "lap"


class TestErrorHandling:
    def test_unknown_route(self, client):
        response = client.get("/nonexistent-route")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["message"] == "Route not found: GET /nonexistent-route"
        assert error["requestId"] == response.headers["X-Request-ID"]

    def test_method_not_allowed(self, client):
        response = client.post("/seasons")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    def test_upstream_500(self, client, upstream):
        upstream.add("/2023.json", {"error": "db down"}, status=500)

        response = client.get("/races/2023")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "EXTERNAL_API_ERROR"
        assert error["message"] == "Failed to fetch races for 2023"
        assert "requestId" in error

    def test_upstream_failures_are_not_cached(self, client, upstream):
        upstream.add("/2023.json", {}, status=502)
        client.get("/races/2023")
        upstream.add("/2023.json", {"MRData": {}})

        response = client.get("/races/2023")

        assert response.status_code == 200
        assert response.json()["meta"]["cached"] is False
        assert upstream.count("/2023.json") == 2

    def test_network_failure_is_503(self, client, upstream):
        upstream.fail("/2023/drivers.json", httpx.ConnectError("connection refused"))

        response = client.get("/drivers/2023")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "EXTERNAL_API_ERROR"

    def test_unexpected_fault_is_500_with_stack_in_development(self, client, upstream):
        upstream.fail("/seasons.json", RuntimeError("kaboom"))

        response = client.get("/seasons")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "Internal Server Error"
        assert "kaboom" in error["stack"]

    def test_stack_hidden_in_production(self, make_app, upstream):
        client = TestClient(make_app(environment="production"))
        upstream.fail("/seasons.json", RuntimeError("kaboom"))

        response = client.get("/seasons")

        assert response.status_code == 500
        assert "stack" not in response.json()["error"]
        assert "kaboom" not in response.text


class TestRateLimiting:
    def test_limit_exceeded(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=2))
        upstream.add("/seasons.json")

        assert client.get("/seasons").status_code == 200
        assert client.get("/seasons").status_code == 200
        response = client.get("/seasons")

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "RATE_LIMIT_EXCEEDED"
        assert error["status"] == 429

    def test_health_bypasses_limit(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=1))
        upstream.add("/seasons.json")
        client.get("/seasons")
        assert client.get("/seasons").status_code == 429

        for _ in range(5):
            assert client.get("/health").status_code == 200

    def test_budget_is_shared_across_routes(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=2))
        upstream.add("/seasons.json")
        upstream.add("/2021/3/results.json")
        upstream.add("/current/drivers.json")

        assert client.get("/seasons").status_code == 200
        assert client.get("/results/2021/3").status_code == 200
        response = client.get("/drivers")

        assert response.status_code == 429
        assert upstream.count("/current/drivers.json") == 0

    def test_remaining_budget_reported_in_headers(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=3))
        upstream.add("/seasons.json")

        first = client.get("/seasons")
        second = client.get("/seasons")

        assert first.headers["X-RateLimit-Limit"] == "3"
        assert first.headers["X-RateLimit-Remaining"] == "2"
        assert second.headers["X-RateLimit-Remaining"] == "1"
        assert "X-RateLimit-Reset" in first.headers

    def test_exceeded_response_tells_client_when_to_retry(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=1, rate_limit_window_seconds=60))
        upstream.add("/seasons.json")
        client.get("/seasons")

        response = client.get("/seasons")

        assert response.status_code == 429
        retry_after = int(response.headers["Retry-After"])
        assert 0 <= retry_after <= 60
        assert response.json()["error"]["retryAfter"] == retry_after

    def test_system_endpoints_carry_no_limit_headers(self, client):
        response = client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    def test_limit_can_be_disabled(self, make_app, upstream):
        client = TestClient(make_app(rate_limit_max_requests=1, rate_limit_enabled=False))
        upstream.add("/seasons.json")

        assert [client.get("/seasons").status_code for _ in range(3)] == [200, 200, 200]


class TestHeaders:
    def test_request_id_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_request_id_propagated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_cors_preflight(self, client):
        response = client.options(
            "/seasons",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestConcurrency:
    @pytest.mark.parametrize("coalesce", [True, False])
    def test_cold_cache_burst(self, make_app, upstream, coalesce):
        app = make_app(coalesce_requests=coalesce)
        upstream.add("/2022/driverStandings.json", {"MRData": {"season": "2022"}})
        upstream.delay = 0.05

        async def burst():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://proxy.test") as http:
                return await asyncio.gather(*(http.get("/standings/2022") for _ in range(8)))

        responses = asyncio.run(burst())

        assert all(r.status_code == 200 for r in responses)
        assert all(r.json()["data"] == {"MRData": {"season": "2022"}} for r in responses)
        calls = upstream.count("/2022/driverStandings.json")
        assert 1 <= calls <= 8
        if coalesce:
            assert calls == 1


def test_lifespan_runs_and_closes_client(make_settings):
    settings = make_settings(cache_check_period=1)
    app = create_app(settings, client=None)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
    assert app.state.f1_data.client._client.is_closed
