from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from ..config import DEFAULT_CONFIG, DirectoryConfig
from ..errors import DirectoryValidationError
from ..models import Pagination
from .params import parse_int


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int


def page_request(
    params: Mapping[str, str],
    config: DirectoryConfig = DEFAULT_CONFIG,
    *,
    limit_param: str = "limit",
    default_limit: int | None = None,
) -> PageRequest:
    """Parse ``page``/``limit``; both must be positive integers."""
    details: list[dict] = []
    page = limit = None
    try:
        page = parse_int(params, "page", config.default_page, minimum=1)
    except DirectoryValidationError as exc:
        details.extend(exc.details)
    try:
        limit = parse_int(
            params,
            limit_param,
            default_limit or config.default_page_size,
            minimum=1,
            maximum=config.max_page_size,
        )
    except DirectoryValidationError as exc:
        details.extend(exc.details)
    if details:
        raise DirectoryValidationError(details)
    return PageRequest(page=page, limit=limit)


def paginate(total: int, page: int, limit: int) -> Pagination:
    if limit <= 0:
        raise DirectoryValidationError.for_field("limit", "must be greater than 0")
    total_pages = math.ceil(total / limit)
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_restaurants=total,
        per_page=limit,
        has_next=page < total_pages,
        has_previous=page > 1,
    )
