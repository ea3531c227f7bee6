"""Tests for the engagement analytics HTTP endpoints."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from engagement_api import queries
from engagement_api.config import settings
from engagement_api.errors import GENERIC_SERVER_ERROR, GENERIC_STORE_ERROR, StoreError
from engagement_api.main import app


class TestHealthEndpoint:
    """Tests for /health."""

    def test_health_returns_200(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": settings.service_name}


class TestTrendMonthly:
    """Tests for /api/engagement/trend-monthly."""

    def test_returns_rows(self, client, fake_store, last_query):
        fake_store.fetch_all.return_value = [
            {
                "month": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "author": "Alice Chen",
                "total_engagements": 12,
            },
            {
                "month": datetime(2024, 2, 1, tzinfo=timezone.utc),
                "author": "Bob Martinez",
                "total_engagements": 3,
            },
        ]

        response = client.get("/api/engagement/trend-monthly")

        assert response.status_code == 200
        data = response.json()
        assert [row["author"] for row in data] == ["Alice Chen", "Bob Martinez"]
        assert data[0]["month"].startswith("2024-01-01T00:00:00")
        assert data[0]["total_engagements"] == 12
        assert last_query().intent == queries.TREND_BY_MONTH

    def test_empty_store(self, client):
        response = client.get("/api/engagement/trend-monthly")

        assert response.status_code == 200
        assert response.json() == []


class TestHeatmap:
    """Tests for /api/engagement/heatmap."""

    def test_returns_cells(self, client, fake_store, last_query):
        fake_store.fetch_all.return_value = [
            {"day_of_week": 0, "hour": 9, "engagement_count": 4},
            {"day_of_week": 6, "hour": 23, "engagement_count": 1},
        ]

        response = client.get("/api/engagement/heatmap")

        assert response.status_code == 200
        assert response.json() == [
            {"day_of_week": 0, "hour": 9, "engagement_count": 4},
            {"day_of_week": 6, "hour": 23, "engagement_count": 1},
        ]
        assert last_query().intent == queries.HEATMAP


class TestScatter:
    """Tests for /api/engagement/scatter."""

    def test_returns_points_including_silent_authors(self, client, fake_store, last_query):
        fake_store.fetch_all.return_value = [
            {
                "author_id": 1,
                "author_name": "Alice Chen",
                "post_volume": 2,
                "total_engagements": 5,
                "engagement_per_post": Decimal("2.50"),
            },
            {
                "author_id": 2,
                "author_name": "Bob Martinez",
                "post_volume": 0,
                "total_engagements": 0,
                "engagement_per_post": None,
            },
        ]

        response = client.get("/api/engagement/scatter")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["engagement_per_post"] == 2.5
        assert data[1] == {
            "author_id": 2,
            "author_name": "Bob Martinez",
            "post_volume": 0,
            "total_engagements": 0,
            "engagement_per_post": None,
        }
        assert last_query().intent == queries.SCATTER


class TestTrendCompare:
    """Tests for /api/engagement/trend-compare."""

    URL = "/api/engagement/trend-compare"

    def test_without_filter(self, client, fake_store, last_query):
        fake_store.fetch_all.return_value = [
            {"last_7_days": 10, "prev_7_days": 5, "pct_change": Decimal("100.00")}
        ]

        response = client.get(self.URL)

        assert response.status_code == 200
        assert response.json() == {"last_7_days": 10, "prev_7_days": 5, "pct_change": 100.0}
        query = last_query()
        assert query.intent == queries.TREND_WINDOW_COMPARE
        assert query.params == {}

    def test_null_pct_change(self, client, fake_store):
        fake_store.fetch_all.return_value = [
            {"last_7_days": 4, "prev_7_days": 0, "pct_change": None}
        ]

        response = client.get(self.URL)

        assert response.status_code == 200
        assert response.json()["pct_change"] is None

    def test_author_filter_is_bound(self, client, last_query):
        response = client.get(self.URL, params={"author_id": "42"})

        assert response.status_code == 200
        query = last_query()
        assert query.params == {"filter_id": 42}
        assert queries.WINDOW_FILTERS["author_id"] in query.sql
        assert "42" not in query.sql

    def test_post_filter_is_bound(self, client, last_query):
        response = client.get(self.URL, params={"post_id": "7"})

        assert response.status_code == 200
        query = last_query()
        assert query.params == {"filter_id": 7}
        assert queries.WINDOW_FILTERS["post_id"] in query.sql

    def test_empty_parameter_means_no_filter(self, client, last_query):
        response = client.get(self.URL, params={"author_id": ""})

        assert response.status_code == 200
        assert last_query().params == {}

    @pytest.mark.parametrize("parameter", ["author_id", "post_id"])
    @pytest.mark.parametrize("value", ["abc", "1.5", "-1", "1;DROP TABLE posts"])
    def test_malformed_filter_returns_400(self, client, fake_store, parameter, value):
        response = client.get(self.URL, params={parameter: value})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_filter"
        assert body["parameter"] == parameter
        fake_store.fetch_all.assert_not_awaited()

    @pytest.mark.parametrize("parameter", ["author_id", "post_id"])
    def test_oversized_id_returns_400(self, client, fake_store, parameter):
        response = client.get(self.URL, params={parameter: "1" * 4301})

        assert response.status_code == 400
        body = response.json()
        assert body["parameter"] == parameter
        assert body["detail"] == "id is out of range"
        fake_store.fetch_all.assert_not_awaited()

    def test_conflicting_filters_return_400(self, client, fake_store):
        response = client.get(self.URL, params={"author_id": "1", "post_id": "2"})

        assert response.status_code == 400
        body = response.json()
        assert body["parameter"] == "post_id"
        assert "mutually exclusive" in body["detail"]
        fake_store.fetch_all.assert_not_awaited()

    def test_missing_row_yields_zero_row(self, client, fake_store):
        fake_store.fetch_all.return_value = []

        response = client.get(self.URL)

        assert response.status_code == 200
        assert response.json() == {"last_7_days": 0, "prev_7_days": 0, "pct_change": None}


class TestLegacyTrendPath:
    """/api/engagement/trend keeps serving the window comparison."""

    def test_trend_is_window_compare(self, client, fake_store, last_query):
        fake_store.fetch_all.return_value = [
            {"last_7_days": 3, "prev_7_days": 6, "pct_change": Decimal("-50.00")}
        ]

        legacy = client.get("/api/engagement/trend", params={"post_id": "5"})
        legacy_query = last_query()
        current = client.get("/api/engagement/trend-compare", params={"post_id": "5"})

        assert legacy.status_code == 200
        assert legacy.content == current.content
        assert legacy.json()["pct_change"] == -50.0
        assert legacy_query.intent == queries.TREND_WINDOW_COMPARE
        assert legacy_query.params == {"filter_id": 5}

    def test_trend_validates_filters(self, client):
        response = client.get("/api/engagement/trend", params={"author_id": "nope"})

        assert response.status_code == 400

    def test_trend_is_marked_deprecated(self, client):
        paths = client.get("/openapi.json").json()["paths"]

        assert paths["/api/engagement/trend"]["get"]["deprecated"] is True
        assert "deprecated" not in paths["/api/engagement/trend-compare"]["get"]


class TestStoreFailures:
    """Store errors become plain-text 500 responses."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/engagement/trend-monthly",
            "/api/engagement/heatmap",
            "/api/engagement/scatter",
            "/api/engagement/trend-compare",
            "/api/engagement/trend",
        ],
    )
    def test_failure_message_is_returned(self, client, fake_store, path):
        fake_store.fetch_all.side_effect = StoreError(
            'relation "engagements" does not exist', "test"
        )

        response = client.get(path)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == 'relation "engagements" does not exist'

    def test_hardened_mode_hides_message(self, client, fake_store, monkeypatch):
        monkeypatch.setattr(settings, "expose_store_errors", False)
        fake_store.fetch_all.side_effect = StoreError("password authentication failed", "heatmap")

        response = client.get("/api/engagement/heatmap")

        assert response.status_code == 500
        assert response.text == GENERIC_STORE_ERROR

    def test_service_keeps_serving_after_failure(self, client, fake_store):
        fake_store.fetch_all.side_effect = [
            StoreError("connection reset", "heatmap"),
            [{"day_of_week": 1, "hour": 2, "engagement_count": 3}],
        ]

        assert client.get("/api/engagement/heatmap").status_code == 500
        assert client.get("/api/engagement/heatmap").status_code == 200


class TestUnexpectedFailures:
    """Exceptions other than StoreError are logged, counted and answered with 500."""

    @pytest.fixture
    def lenient_client(self, client):
        # ServerErrorMiddleware re-raises after responding; keep the response
        return TestClient(app, raise_server_exceptions=False)

    def test_unexpected_error_returns_plain_500(self, lenient_client, fake_store, caplog):
        fake_store.fetch_all.side_effect = RuntimeError("boom")
        before = REGISTRY.get_sample_value("analytics_unhandled_errors_total") or 0.0

        with caplog.at_level(logging.ERROR, logger="engagement_api.errors"):
            response = lenient_client.get("/api/engagement/scatter")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == GENERIC_SERVER_ERROR
        assert "boom" not in response.text
        assert REGISTRY.get_sample_value("analytics_unhandled_errors_total") == before + 1
        assert any(
            record.exc_info and "Unhandled error on /api/engagement/scatter" in record.getMessage()
            for record in caplog.records
        )
