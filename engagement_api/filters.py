"""
Validation of the optional window-compare filters.

Query-string values are untrusted and must have identifier shape before a
query is built.
"""
import re
from typing import Optional

from engagement_api.errors import InvalidFilterError

_IDENTIFIER_RE = re.compile(r"[0-9]+")
BIGINT_MAX = 2**63 - 1


def parse_identifier(parameter: str, raw: Optional[str]) -> Optional[int]:
    """
    Return ``raw`` as an integer id, or None when it is absent or blank.

    Raises InvalidFilterError if the value is not a non-negative base-10
    integer that fits in a PostgreSQL bigint.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    if not _IDENTIFIER_RE.fullmatch(value):
        raise InvalidFilterError(parameter, f"expected an integer id, got {raw!r}")
    # int() refuses very long digit strings, so bound the length first
    digits = value.lstrip("0") or "0"
    if len(digits) > len(str(BIGINT_MAX)) or int(digits) > BIGINT_MAX:
        raise InvalidFilterError(parameter, "id is out of range")
    return int(digits)


def resolve_window_filter(
    author_id: Optional[str],
    post_id: Optional[str],
) -> tuple[Optional[int], Optional[int]]:
    """Validate both filters; at most one of them may be set."""
    author = parse_identifier("author_id", author_id)
    post = parse_identifier("post_id", post_id)
    if author is not None and post is not None:
        raise InvalidFilterError(
            "post_id", "author_id and post_id are mutually exclusive"
        )
    return author, post
