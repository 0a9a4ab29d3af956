"""Integration tests for the anonymous audit tool and health check."""

from unittest.mock import AsyncMock, patch

from brandguard.models.exceptions import GeminiUnavailableException

SESSION = {"X-Session-ID": "visitor-session-1"}


class TestPublicAuditAPI:
    """Test cases for the free scan endpoint."""

    def test_scan_counts_down(self, client, gemini, passing_report):
        gemini.reply("analyze_text", passing_report)

        response = client.post("/public/audit", json={"content": "#ad caption"}, headers=SESSION)

        assert response.status_code == 200
        body = response.json()
        assert body["scans_remaining"] == 2
        assert body["report"]["id"].startswith("pub_")
        assert body["report"]["workspace_id"] == "public"
        assert body["report"]["status"] == "approved"
        assert gemini.calls_for("insight") == []

    def test_limit_reached(self, client, gemini, passing_report):
        gemini.reply("analyze_text", passing_report)
        for _ in range(3):
            client.post("/public/audit", json={"content": "caption"}, headers=SESSION)

        response = client.post("/public/audit", json={"content": "caption"}, headers=SESSION)

        assert response.status_code == 429
        assert response.json()["scans_remaining"] == 0
        assert len(gemini.calls_for("analyze_text")) == 3

    def test_sessions_are_independent(self, client, gemini, passing_report):
        gemini.reply("analyze_text", passing_report)
        for _ in range(3):
            client.post("/public/audit", json={"content": "caption"}, headers=SESSION)

        response = client.post("/public/audit", json={"content": "caption"}, headers={"X-Session-ID": "another-visitor"})

        assert response.json()["scans_remaining"] == 2

    def test_failed_scan_is_free(self, client, gemini, passing_report):
        gemini.reply("analyze_text", error=GeminiUnavailableException(503))
        assert client.post("/public/audit", json={"content": "caption"}, headers=SESSION).status_code == 503

        gemini.reply("analyze_text", passing_report)
        response = client.post("/public/audit", json={"content": "caption"}, headers=SESSION)

        assert response.json()["scans_remaining"] == 2

    def test_session_header_required(self, client, gemini):
        assert client.post("/public/audit", json={"content": "caption"}).status_code == 422
        assert client.post("/public/audit", json={"content": "caption"}, headers={"X-Session-ID": "short"}).status_code == 422

    def test_nothing_is_stored(self, client, gemini, passing_report, workspace):
        gemini.reply("analyze_text", passing_report)

        client.post("/public/audit", json={"content": "caption"}, headers=SESSION)

        assert client.get(f"/workspaces/{workspace['id']}/reports").json() == []


class TestHealthAPI:

    def test_healthy(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "healthy", "services": {"database": True, "gemini": True}}
        assert "X-Request-ID" in response.headers

    def test_database_down(self, client):
        with patch("brandguard.routers.health.get_db_health", new=AsyncMock(return_value=False)):
            response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
