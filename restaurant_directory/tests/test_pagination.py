from __future__ import annotations

import pytest

from restaurant_directory.errors import DirectoryValidationError
from restaurant_directory.query.pagination import page_request, paginate


def test_pagination_for_47_results():
    last = paginate(47, page=5, limit=10)
    assert last.total_pages == 5
    assert last.has_next is False
    assert last.has_previous is True

    first = paginate(47, page=1, limit=10)
    assert first.has_previous is False
    assert first.has_next is True


def test_empty_result_has_no_pages():
    empty = paginate(0, page=1, limit=10)
    assert empty.total_pages == 0
    assert empty.has_next is False


def test_page_request_defaults():
    request = page_request({})
    assert (request.page, request.limit) == (1, 10)


@pytest.mark.parametrize("params, fields", [
    ({"page": "0"}, {"page"}),
    ({"limit": "0"}, {"limit"}),
    ({"limit": "101"}, {"limit"}),
    ({"page": "x", "limit": "y"}, {"page", "limit"}),
])
def test_page_request_rejects_bad_values(params, fields):
    with pytest.raises(DirectoryValidationError) as exc_info:
        page_request(params)
    assert {d["field"] for d in exc_info.value.details} == fields
