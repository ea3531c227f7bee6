"""
Engagement analytics endpoints:
  GET /api/engagement/trend-monthly — engagements per (month, author)
  GET /api/engagement/heatmap       — engagements per (day of week, hour)
  GET /api/engagement/scatter       — post volume vs engagement per author
  GET /api/engagement/trend-compare — last 7 days vs the 7 days before
  GET /api/engagement/trend         — deprecated alias of /trend-compare

Both trend intents were once registered on /trend, where the window
comparison shadowed the monthly trend. /trend keeps answering with the
window comparison so existing dashboards are unaffected.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from opentelemetry import trace

from engagement_api import queries
from engagement_api.database import AnalyticsStore, get_store
from engagement_api.errors import InvalidFilterError
from engagement_api.filters import resolve_window_filter
from engagement_api.schemas import (
    HeatmapCell,
    MonthlyTrendRow,
    ScatterPoint,
    TrendComparison,
)
from engagement_api.telemetry import FILTER_REJECTIONS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def _build_comparison(rows: list[dict[str, Any]]) -> TrendComparison:
    # The statement always yields exactly one row; fall back to zeros anyway
    if not rows:
        logger.warning("Window comparison returned no row — answering with zeros")
        return TrendComparison()
    return TrendComparison(**rows[0])


@router.get("/trend-monthly", response_model=list[MonthlyTrendRow])
async def trend_by_month(store: AnalyticsStore = Depends(get_store)):
    with tracer.start_as_current_span("engagement_trend_monthly") as span:
        rows = await store.fetch_all(queries.trend_by_month())
        span.set_attribute("result.rows", len(rows))
        return [MonthlyTrendRow(**row) for row in rows]


@router.get("/heatmap", response_model=list[HeatmapCell])
async def heatmap(store: AnalyticsStore = Depends(get_store)):
    with tracer.start_as_current_span("engagement_heatmap") as span:
        rows = await store.fetch_all(queries.heatmap())
        span.set_attribute("result.rows", len(rows))
        return [HeatmapCell(**row) for row in rows]


@router.get("/scatter", response_model=list[ScatterPoint])
async def scatter(store: AnalyticsStore = Depends(get_store)):
    with tracer.start_as_current_span("engagement_scatter") as span:
        rows = await store.fetch_all(queries.scatter())
        span.set_attribute("result.rows", len(rows))
        return [ScatterPoint(**row) for row in rows]


@router.get("/trend-compare", response_model=TrendComparison)
async def trend_window_compare(
    author_id: Optional[str] = Query(None, description="Only count engagements on this author's posts"),
    post_id: Optional[str] = Query(None, description="Only count engagements on this post"),
    store: AnalyticsStore = Depends(get_store),
):
    """
    Compare engagement counts in the last 7 days with the 7 days before.

    ``author_id`` and ``post_id`` are mutually exclusive integer ids.
    ``pct_change`` is null when the previous window has no engagements.
    """
    with tracer.start_as_current_span("engagement_trend_compare") as span:
        try:
            author, post = resolve_window_filter(author_id, post_id)
        except InvalidFilterError as exc:
            FILTER_REJECTIONS_TOTAL.labels(parameter=exc.parameter).inc()
            logger.info("Rejected window filter %s", exc)
            raise

        if author is not None:
            span.set_attribute("filter.author_id", author)
        if post is not None:
            span.set_attribute("filter.post_id", post)

        rows = await store.fetch_all(
            queries.trend_window_compare(author_id=author, post_id=post)
        )
        return _build_comparison(rows)


router.add_api_route(
    "/trend",
    trend_window_compare,
    methods=["GET"],
    response_model=TrendComparison,
    deprecated=True,
    summary="Trend Window Compare (deprecated path, use /trend-compare)",
)
