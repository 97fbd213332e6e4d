"""
Tests for page/pageSize handling

`clamp_page_size` is pure; the listing endpoints are exercised against a
seeded account.
"""

import pytest

from inboxdesk.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, clamp_page_size
from utils.mock_utils import create_test_inbox


class TestClampPageSize:
    def test_default_when_missing(self):
        assert clamp_page_size(None) == DEFAULT_PAGE_SIZE

    @pytest.mark.parametrize("requested,expected", [(1, 1), (50, 50), (100, 100), (101, 100), (10_000, 100)])
    def test_clamped_to_maximum(self, requested, expected):
        assert clamp_page_size(requested) == expected

    def test_never_below_one(self):
        assert clamp_page_size(0) == 1
        assert clamp_page_size(-5) == 1

    def test_custom_bounds(self):
        assert clamp_page_size(None, default=5, maximum=10) == 5
        assert clamp_page_size(50, default=5, maximum=10) == 10

    def test_module_maximum(self):
        assert MAX_PAGE_SIZE == 100


class TestPaginatedListing:
    @pytest.fixture
    async def inboxes(self, test_db, account):
        return [await create_test_inbox(test_db, account, f"Inbox {i:02d}") for i in range(5)]

    async def test_pagination_block(self, client, owner_headers, inboxes):
        response = await client.get("/api/account/inboxes?page=2&pageSize=2", headers=owner_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 2, "pageSize": 2, "total": 5, "totalPages": 3}

    async def test_oversized_page_size_is_clamped(self, client, owner_headers, inboxes):
        response = await client.get("/api/account/inboxes?pageSize=500", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["pageSize"] == 100
        assert len(response.json()["data"]) == 5

    async def test_page_past_the_end_is_empty(self, client, owner_headers, inboxes):
        response = await client.get("/api/account/inboxes?page=9&pageSize=2", headers=owner_headers)
        assert response.json()["data"] == []
        assert response.json()["pagination"]["total"] == 5
