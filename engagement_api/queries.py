"""
SQL for each analytics intent.

Every builder returns an AnalyticsQuery: the complete statement plus its bind
parameters. Request values only ever travel through ``params``; the statement
text is assembled from fixed fragments.

Tables:
  authors     (author_id, name)
  posts       (post_id, author_id, title, created_at)
  engagements (engagement_id, post_id, engaged_timestamp, engagement_type)
"""
from dataclasses import dataclass, field
from typing import Any, Optional

TREND_BY_MONTH = "trend_by_month"
HEATMAP = "heatmap"
SCATTER = "scatter"
TREND_WINDOW_COMPARE = "trend_window_compare"

# Optional window-compare predicates, keyed by the query-string parameter.
WINDOW_FILTERS: dict[str, str] = {
    "author_id": "AND p.author_id = :filter_id",
    "post_id": "AND e.post_id = :filter_id",
}


@dataclass(frozen=True)
class AnalyticsQuery:
    intent: str
    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def trend_by_month() -> AnalyticsQuery:
    sql = """
        SELECT
            DATE_TRUNC('month', e.engaged_timestamp) AS month,
            a.name AS author,
            COUNT(*) AS total_engagements
        FROM engagements e
        JOIN posts p ON p.post_id = e.post_id
        JOIN authors a ON a.author_id = p.author_id
        GROUP BY month, author
        ORDER BY month, author
    """
    return AnalyticsQuery(TREND_BY_MONTH, sql)


def heatmap() -> AnalyticsQuery:
    # DOW follows PostgreSQL: 0 = Sunday … 6 = Saturday
    sql = """
        SELECT
            CAST(EXTRACT(DOW FROM engaged_timestamp) AS INTEGER) AS day_of_week,
            CAST(EXTRACT(HOUR FROM engaged_timestamp) AS INTEGER) AS hour,
            COUNT(*) AS engagement_count
        FROM engagements
        GROUP BY day_of_week, hour
        ORDER BY day_of_week, hour
    """
    return AnalyticsQuery(HEATMAP, sql)


def scatter() -> AnalyticsQuery:
    # LEFT JOINs keep authors with no posts; NULLIF turns x/0 into NULL
    sql = """
        SELECT
            a.author_id,
            a.name AS author_name,
            COUNT(DISTINCT p.post_id) AS post_volume,
            COUNT(e.engagement_id) AS total_engagements,
            ROUND(
                CAST(COUNT(e.engagement_id) AS NUMERIC)
                / NULLIF(COUNT(DISTINCT p.post_id), 0),
            2) AS engagement_per_post
        FROM authors a
        LEFT JOIN posts p ON p.author_id = a.author_id
        LEFT JOIN engagements e ON e.post_id = p.post_id
        GROUP BY a.author_id, a.name
        ORDER BY a.author_id
    """
    return AnalyticsQuery(SCATTER, sql)


def trend_window_compare(
    author_id: Optional[int] = None,
    post_id: Optional[int] = None,
) -> AnalyticsQuery:
    """
    Engagements in [now-7d, now) versus [now-14d, now-7d).

    At most one filter is applied; ``author_id`` is checked first and wins
    when both are given.
    """
    predicate = ""
    params: dict[str, Any] = {}
    if author_id is not None:
        predicate = WINDOW_FILTERS["author_id"]
        params["filter_id"] = author_id
    elif post_id is not None:
        predicate = WINDOW_FILTERS["post_id"]
        params["filter_id"] = post_id

    sql = f"""
        WITH last7 AS (
            SELECT COUNT(*) AS count
            FROM engagements e
            JOIN posts p ON p.post_id = e.post_id
            WHERE e.engaged_timestamp >= NOW() - INTERVAL '7 days'
              AND e.engaged_timestamp < NOW()
              {predicate}
        ),
        prev7 AS (
            SELECT COUNT(*) AS count
            FROM engagements e
            JOIN posts p ON p.post_id = e.post_id
            WHERE e.engaged_timestamp >= NOW() - INTERVAL '14 days'
              AND e.engaged_timestamp < NOW() - INTERVAL '7 days'
              {predicate}
        )
        SELECT
            last7.count AS last_7_days,
            prev7.count AS prev_7_days,
            CASE
                WHEN prev7.count = 0 THEN NULL
                ELSE ROUND(
                    CAST(last7.count - prev7.count AS NUMERIC) / prev7.count * 100,
                2)
            END AS pct_change
        FROM last7, prev7
    """
    return AnalyticsQuery(TREND_WINDOW_COMPARE, sql, params)
