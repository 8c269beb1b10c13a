"""
Response envelope helpers

Every endpoint answers with:
    {"success": bool, "data": ..., "message": str}
and list endpoints add:
    "pagination": {"total", "per_page", "current_page", "last_page", "from", "to"}
"""

import math
from typing import Any, Optional

from pydantic import field_validator


def success_response(
    data: Any = None,
    message: str = "",
    pagination: Optional[dict] = None,
) -> dict:
    body = {"success": True, "data": data, "message": message}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def error_response(message: str, errors: Any = None) -> dict:
    return {"success": False, "message": message, "data": errors}


def build_pagination(total: int, page: int, per_page: int, count: int) -> dict:
    """Pagination block for a page holding `count` items."""
    first = (page - 1) * per_page + 1 if count else None
    return {
        "total": total,
        "per_page": per_page,
        "current_page": page,
        "last_page": max(1, math.ceil(total / per_page)),
        "from": first,
        "to": first + count - 1 if count else None,
    }


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("may not be null")
    return value


def reject_null(*fields: str):
    """
    Validator for PATCH schemas: an omitted field is left alone, but an
    explicit null is refused for columns that cannot hold one.

        check_not_null = reject_null("name", "keywords")
    """
    return field_validator(*fields, mode="before")(_not_null)
