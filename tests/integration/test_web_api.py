"""
Integration tests for the HTTP API.

The audit service is swapped through FastAPI dependency overrides for one
backed by a fake browser session and a scripted prober, so every request
runs the real routing, classification, scoring and serialization code.
"""

import pytest
from fastapi.testclient import TestClient

from siteprobe.audit import PageAuditService
from siteprobe.errors import NavigationError
from siteprobe.models import ProbeResult, ResourceKind
from siteprobe.web.main import app, get_audit_service

from tests.helpers import (
    FakeInspector,
    FakeProber,
    make_iframe,
    make_image,
    make_media,
    make_script,
    make_stylesheet,
    session_factory_for,
)


class ExplodingInspector(FakeInspector):
    async def extract(self, kind):
        raise KeyError("unexpected payload")


@pytest.fixture
def inspector():
    return FakeInspector(
        {
            ResourceKind.IMAGE: [make_image(0), make_image(1, alt="", src="https://example.com/banner.png")],
            ResourceKind.VIDEO: [make_media(0)],
            ResourceKind.IFRAME: [make_iframe(0, sandbox="allow-scripts allow-same-origin")],
            ResourceKind.STYLESHEET: [make_stylesheet(0), make_stylesheet(1, href="https://example.com/missing.css")],
            ResourceKind.SCRIPT: [make_script(0, defer=False)],
        },
        title="Example Domain",
        links=["https://example.com/", "https://example.com/contact", "https://twitter.com/example"],
        inline_styles=3,
        css_timing={"cssCount": 2, "totalLoadTime": 150.0},
    )


@pytest.fixture
def prober():
    return FakeProber(
        {
            "https://example.com/missing.css": ProbeResult(status=404),
            "https://example.com/api/items": ProbeResult(
                status=200,
                headers={"content-type": "application/json", "cache-control": "no-cache"},
                body=b"[]",
                ttfb_ms=42.0,
                elapsed_ms=60.0,
            ),
            "https://down.example.com/": ProbeResult.failure("Cannot connect to host"),
        }
    )


@pytest.fixture
def client(test_config, inspector, prober):
    def override():
        return PageAuditService(
            test_config,
            session_factory=session_factory_for(inspector),
            probe_factory=lambda probe_config: prober,
        )

    app.dependency_overrides[get_audit_service] = override
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.mark.integration
class TestInputValidation:
    @pytest.mark.parametrize(
        "path",
        ["/api/audits", "/api/dominator", "/api/dominator/css", "/api/dominator/links", "/api/playwright-crawl"],
    )
    @pytest.mark.parametrize("payload", [{}, {"url": ""}, {"url": None}])
    def test_missing_url(self, client, path, payload):
        response = client.post(path, json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "URL is required"

    def test_missing_body(self, client):
        response = client.post("/api/dominator")
        assert response.status_code == 400
        assert response.json()["error"] == "URL is required"

    def test_missing_routes(self, client):
        response = client.post("/api/playmaker", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Routes are required"

    def test_wrongly_typed_body_is_a_client_error(self, client):
        response = client.post("/api/playmaker", json={"routes": "https://example.com"})
        assert response.status_code == 400


@pytest.mark.integration
class TestAuditEndpoints:
    def test_page_speed(self, client):
        response = client.post("/api/audits", json={"url": "https://example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["title"] == "Example Domain"
        assert body["data"]["performance"]["grade"] == "Excellent"

    def test_dominator(self, client, inspector):
        response = client.post("/api/dominator", json={"url": "https://example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Example Domain"
        assert body["imageCount"] == 2
        assert body["videoCount"] == 1
        assert {issue["type"] for issue in body["issues"]} == {
            "missing-alt",
            "legacy-format",
            "no-valid-source",
            "unsafe-sandbox",
        }
        assert body["summary"]["total"] == len(body["issues"])
        assert all(issue["element"] != "image[0]" for issue in body["issues"])
        assert inspector.closed

    def test_css(self, client):
        response = client.post("/api/dominator/css", json={"url": "https://example.com"})

        body = response.json()
        assert response.status_code == 200
        assert [issue["type"] for issue in body["issues"]] == ["not-found"]
        assert body["issues"][0]["url"] == "https://example.com/missing.css"
        assert body["stylesheetCount"] == 2
        assert body["inlineStylesCount"] == 3

    def test_links(self, client):
        response = client.post("/api/dominator/links", json={"url": "https://example.com"})

        body = response.json()
        assert response.status_code == 200
        assert sorted(issue["type"] for issue in body["issues"]) == ["not-found", "render-blocking"]
        assert body["scriptCount"] == 1

    def test_crawl(self, client):
        response = client.post("/api/playwright-crawl", json={"url": "https://example.com"})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["routes"] == ["https://example.com/", "https://example.com/contact"]
        assert body["data"]["stats"] == {"totalLinks": 3, "sameOriginLinks": 2}

    def test_playmaker(self, client):
        response = client.post(
            "/api/playmaker",
            json={"routes": ["https://example.com/api/items", "https://down.example.com/"]},
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [result["url"] for result in results] == ["https://example.com/api/items", "https://down.example.com/"]

        healthy, degraded = results
        assert healthy["jsonEmpty"] == 1
        assert healthy["jsonSeverity"] == "warn"
        assert healthy["headers"]["cacheControl"] == {"present": 1, "severity": "good"}
        assert healthy["headers"]["cors"] == {"present": 0, "severity": "warn"}
        assert healthy["ttfb"] == 42.0
        assert healthy["loadTestAvg"] == 60.0

        assert degraded["status"] == 0
        assert degraded["statusSeverity"] == "bad"
        assert degraded["jsonEmpty"] == -1

    def test_playmaker_with_no_routes(self, client):
        response = client.post("/api/playmaker", json={"routes": []})

        assert response.status_code == 200
        assert response.json() == {"results": []}


@pytest.mark.integration
class TestFailures:
    def test_navigation_failure(self, client, inspector):
        inspector.navigation_error = NavigationError("https://example.com", "net::ERR_CONNECTION_REFUSED")

        response = client.post("/api/dominator", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert "Failed to load the page" in response.json()["error"]
        assert response.json()["success"] is False
        assert inspector.closed

    @pytest.mark.parametrize(
        "path, message",
        [
            ("/api/dominator", "Failed to load the page. Please ensure the URL is correct and accessible."),
            ("/api/dominator/css", "Failed to analyze CSS for the given URL"),
            ("/api/dominator/links", "Failed to process the URL"),
        ],
    )
    def test_unexpected_fault_uses_endpoint_message(self, test_config, path, message):
        inspector = ExplodingInspector()
        app.dependency_overrides[get_audit_service] = lambda: PageAuditService(
            test_config,
            session_factory=session_factory_for(inspector),
            probe_factory=lambda probe_config: FakeProber(),
        )
        try:
            with TestClient(app) as test_client:
                response = test_client.post(path, json={"url": "https://example.com"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == message
        assert inspector.closed


@pytest.mark.integration
class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_metrics(self, client):
        client.post("/api/playwright-crawl", json={"url": "https://example.com"})
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "siteprobe_audits_total" in response.text

    def test_timing_headers(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_generated_request_id(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_cors(self, client):
        response = client.get("/health", headers={"Origin": "https://dashboard.example.com"})
        assert response.headers["access-control-allow-origin"] == "*"
