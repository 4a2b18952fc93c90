"""
ASVAB Search — API Tests.

Tests for the FastAPI REST endpoints over the sample corpus.
"""

import sqlite3

import pytest
from fastapi.testclient import TestClient

from asvab_search import config
from asvab_search.temporal import days_ago_iso


@pytest.fixture
def client(db_path, seed_db, monkeypatch):
    """Test client bound to an isolated, seeded database."""
    import asvab_search.api as api_mod

    monkeypatch.setenv("ASVAB_SEARCH_DB", db_path)
    config.reload()
    with TestClient(api_mod.app) as c:
        # Lifespan has created the schema by now
        seed_db(db_path)
        yield c


@pytest.fixture
def headers(client):
    """Bearer headers for a reader, a writer and an admin."""
    manager = client.app.state.auth_manager
    reader, _ = manager.create_key("reader", "user-1", ["read"])
    writer, _ = manager.create_key("writer", "user-1", ["read", "write"])
    admin, _ = manager.create_key("admin", "admin-1", ["read", "write", "admin"])
    return {
        name: {"Authorization": f"Bearer {key}"}
        for name, key in (("reader", reader), ("writer", writer), ("admin", admin))
    }


class TestHealth:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["service"] == "asvab-search"

    def test_health(self, client):
        assert client.get("/health").status_code == 200

    def test_metrics(self, client):
        client.get("/health")
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "asvab_search_http_requests_total" in resp.text
        assert "asvab_search_db_connections" in resp.text

    def test_request_series_use_route_templates(self, client, headers):
        for i in range(40):
            client.get(f"/search/similar/nope-{i}", headers=headers["reader"])
            client.get(f"/no/such/page-{i}")

        text = client.get("/metrics").text
        series = {
            line.split(" ")[0]
            for line in text.splitlines()
            if line.startswith("asvab_search_http_requests_total{")
        }
        assert 'path="/search/similar/{item_id}"' in text
        assert 'path="unmatched"' in text
        assert "nope-" not in text
        assert "page-" not in text
        assert len(series) <= 3


class TestAuth:
    def test_missing_header(self, client):
        assert client.post("/search/advanced", json={}).status_code == 401

    def test_bad_scheme(self, client):
        resp = client.post("/search/advanced", json={}, headers={"Authorization": "Token abc"})
        assert resp.status_code == 401

    def test_unknown_key(self, client):
        resp = client.post(
            "/search/advanced", json={}, headers={"Authorization": "Bearer asv_" + "0" * 64}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or revoked key"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_revoked_key_localized(self, client):
        manager = client.app.state.auth_manager
        raw, key = manager.create_key("temp", "user-1", ["read"])
        auth = {"Authorization": f"Bearer {raw}"}
        assert client.get("/search/history", headers=auth).status_code == 200

        manager.revoke_key(key.id)
        resp = client.get("/search/history", headers={**auth, "Accept-Language": "es"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Clave inválida o revocada"

    def test_admin_only(self, client, headers):
        assert client.get("/search/trends", headers=headers["writer"]).status_code == 403
        assert client.get("/search/quality", headers=headers["reader"]).status_code == 403


class TestAdvancedSearch:
    def test_math_questions(self, client, headers):
        resp = client.post(
            "/search/advanced",
            json={"query": "math", "filters": {"contentType": "QUESTIONS"}},
            headers=headers["reader"],
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["items"][0]["id"] == "q1"
        assert data["totalCount"] == 1
        assert "<mark>math</mark>" in " ".join(data["items"][0]["highlights"])
        assert data["items"][0]["userInteraction"]["accuracy"] == 0.5
        assert data["facets"]["contentTypes"][0] == {"name": "QUESTIONS", "count": 1}

    def test_empty_body_matches_everything(self, client, headers):
        data = client.post("/search/advanced", json={}, headers=headers["reader"]).json()
        assert data["totalCount"] == 9
        assert len(data["items"]) == 9
        assert data["hasMore"] is False

    def test_oversized_limit_is_clamped(self, client, headers):
        resp = client.post("/search/advanced", json={"limit": 5000}, headers=headers["reader"])
        assert resp.status_code == 200
        assert len(resp.json()["items"]) <= 100

    def test_invalid_paging(self, client, headers):
        assert client.post("/search/advanced", json={"page": 0}, headers=headers["reader"]).status_code == 422
        assert client.post("/search/advanced", json={"limit": 0}, headers=headers["reader"]).status_code == 422

    def test_sorting_and_filters(self, client, headers):
        body = {
            "filters": {"contentType": "MILITARY_JOBS", "branch": "ARMY"},
            "sorting": {"field": "DATE", "order": "ASC"},
        }
        data = client.post("/search/advanced", json=body, headers=headers["reader"]).json()
        assert [i["id"] for i in data["items"]] == ["j1", "j2"]

    def test_records_history(self, client, headers):
        client.post("/search/advanced", json={"query": "algebra"}, headers=headers["reader"])
        history = client.get("/search/history", headers=headers["reader"]).json()
        assert history[0]["query"] == "algebra"
        assert history[0]["resultCount"] == 1
        popular = client.get("/search/popular").json()
        assert popular == [{"query": "algebra", "count": 1}]


class TestSemantic:
    def test_semantic_search(self, client, headers):
        resp = client.get("/search/semantic", params={"query": "algebra"}, headers=headers["reader"])
        assert resp.status_code == 200
        assert resp.json()[0]["id"] == "q3"
        assert 0 <= resp.json()[0]["semanticSimilarity"] <= 1

    def test_query_required(self, client, headers):
        assert client.get("/search/semantic", headers=headers["reader"]).status_code == 422

    def test_similar(self, client, headers):
        resp = client.get("/search/similar/q1", headers=headers["reader"])
        assert resp.status_code == 200
        assert "q1" not in [r["id"] for r in resp.json()]

    def test_similar_missing_item(self, client, headers):
        resp = client.get("/search/similar/nope", headers=headers["reader"])
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Source item not found"

    def test_localized_error(self, client, headers):
        resp = client.get(
            "/search/similar/nope", headers={**headers["reader"], "Accept-Language": "es-ES"}
        )
        assert resp.json()["detail"] == "Elemento de origen no encontrado"

    def test_public_suggestions(self, client):
        assert client.get("/search/suggestions", params={"query": "math"}).json() == {
            "suggestions": ["mathematics knowledge"]
        }
        semantic = client.get("/search/suggestions/semantic", params={"query": "flash"}).json()
        assert "flashcard review" in semantic["suggestions"]


class TestFeedback:
    def test_requires_write(self, client, headers):
        body = {"query": "math", "resultId": "q1", "rating": 5, "wasHelpful": True}
        assert client.post("/search/feedback", json=body, headers=headers["reader"]).status_code == 403

    def test_recorded(self, client, headers):
        body = {"query": "math", "resultId": "q1", "rating": 4, "wasHelpful": True}
        resp = client.post("/search/feedback", json=body, headers=headers["writer"])
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        quality = client.get("/search/quality", headers=headers["admin"]).json()
        assert quality["qualityMetrics"]["totalFeedbackCount"] == 1

    def test_rating_out_of_range(self, client, headers):
        body = {"query": "math", "resultId": "q1", "rating": 6, "wasHelpful": True}
        assert client.post("/search/feedback", json=body, headers=headers["writer"]).status_code == 422


class TestAnalytics:
    def test_user_analytics(self, client, headers):
        client.post("/search/advanced", json={"query": "math"}, headers=headers["reader"])
        report = client.get("/search/analytics", headers=headers["reader"]).json()
        assert report["totalSearches"] == 1
        assert report["searchSuccessRate"] == 1

    def test_user_analytics_window(self, client, headers, db_path):
        conn = sqlite3.connect(db_path)
        with conn:
            conn.execute(
                "INSERT INTO search_history (user_id, query, result_count, searched_at) "
                "VALUES (?, ?, ?, ?)",
                ("user-1", "navy ratings", 2, days_ago_iso(10)),
            )
        conn.close()

        assert client.get("/search/analytics", headers=headers["reader"]).json()["totalSearches"] == 1
        recent = client.get("/search/analytics", params={"days": 7}, headers=headers["reader"])
        assert recent.status_code == 200
        assert recent.json()["totalSearches"] == 0

    def test_user_analytics_rejects_bad_window(self, client, headers):
        for days in (0, 366):
            resp = client.get("/search/analytics", params={"days": days}, headers=headers["reader"])
            assert resp.status_code == 422

    def test_trends(self, client, headers):
        client.post("/search/advanced", json={"query": "navy"}, headers=headers["reader"])
        trends = client.get("/search/trends", headers=headers["admin"]).json()
        assert trends["trendingQueries"] == [{"query": "navy", "searchCount": 1}]


class TestFilters:
    def test_presets(self, client, headers):
        body = {"name": "Easy math", "filters": {"categories": ["MATHEMATICS_KNOWLEDGE"], "difficulties": ["EASY"]}}
        resp = client.post("/search/presets", json=body, headers=headers["writer"])
        assert resp.status_code == 200
        assert resp.json()["filters"]["categories"] == ["MATHEMATICS_KNOWLEDGE"]

        presets = client.get("/search/presets", headers=headers["reader"]).json()
        assert [p["name"] for p in presets] == ["Easy math"]

    def test_blank_preset_name(self, client, headers):
        body = {"name": "   ", "filters": {}}
        assert client.post("/search/presets", json=body, headers=headers["writer"]).status_code == 422

    def test_personalized(self, client, headers):
        data = client.get("/search/filters/personalized", headers=headers["reader"]).json()
        assert data == {
            "contentType": "ALL",
            "categories": ["MATHEMATICS_KNOWLEDGE"],
            "difficulties": ["EASY"],
            "branch": "ARMY",
        }

    def test_available(self, client, headers):
        data = client.get("/search/filters/available", headers=headers["reader"]).json()
        assert {b["name"] for b in data["branches"]} == {"ARMY", "NAVY"}
