"""Tests for the Notion REST client. requests is patched throughout."""

from unittest.mock import patch

import pytest
import requests

from renovation_hub import notion_api
from notion_pages import http_response


def test_headers_carry_key_and_version():
    headers = notion_api.notion_headers()
    assert headers["Authorization"] == "Bearer secret_test"
    assert headers["Notion-Version"] == "2022-06-28"


class TestQueryAll:
    def test_follows_cursor_until_exhausted(self):
        pages = [
            http_response(json_data={"results": [{"id": "1"}, {"id": "2"}], "has_more": True, "next_cursor": "c1"}),
            http_response(json_data={"results": [{"id": "3"}], "has_more": False, "next_cursor": None}),
        ]
        with patch("renovation_hub.notion_api.requests.post", side_effect=pages) as mock_post:
            results = notion_api.query_all("db-1", {"filter": {"property": "Status"}})

        assert [r["id"] for r in results] == ["1", "2", "3"]
        assert mock_post.call_count == 2
        url = mock_post.call_args.args[0]
        body = mock_post.call_args.kwargs["json"]
        assert url == "https://api.notion.com/v1/databases/db-1/query"
        assert body["page_size"] == 100
        assert body["start_cursor"] == "c1"
        assert body["filter"] == {"property": "Status"}

    def test_single_page(self):
        response = http_response(json_data={"results": [{"id": "1"}], "has_more": False})
        with patch("renovation_hub.notion_api.requests.post", return_value=response) as mock_post:
            assert notion_api.query_all("db-1") == [{"id": "1"}]
        assert "start_cursor" not in mock_post.call_args.kwargs["json"]

    def test_missing_database_id_returns_empty(self):
        with patch("renovation_hub.notion_api.requests.post") as mock_post:
            assert notion_api.query_all(None) == []
        mock_post.assert_not_called()

    def test_http_error_propagates(self):
        with patch("renovation_hub.notion_api.requests.post", return_value=http_response(401, text="unauthorized")):
            with pytest.raises(requests.HTTPError):
                notion_api.query_all("db-1")


class TestWrites:
    def test_update_patches_properties(self):
        with patch("renovation_hub.notion_api.requests.patch", return_value=http_response(json_data={"id": "p1"})) as mock_patch:
            notion_api.update_record("p1", {"Status": {"select": {"name": "Approved"}}})

        assert mock_patch.call_args.args[0] == "https://api.notion.com/v1/pages/p1"
        assert mock_patch.call_args.kwargs["json"] == {"properties": {"Status": {"select": {"name": "Approved"}}}}

    def test_update_requires_page_id(self):
        with pytest.raises(ValueError):
            notion_api.update_record("", {})

    def test_archive(self):
        with patch("renovation_hub.notion_api.requests.patch", return_value=http_response(json_data={})) as mock_patch:
            notion_api.archive_record("p1")
        assert mock_patch.call_args.kwargs["json"] == {"archived": True}

    def test_create_sets_database_parent(self):
        response = http_response(json_data={"id": "new", "url": "https://www.notion.so/new"})
        with patch("renovation_hub.notion_api.requests.post", return_value=response) as mock_post:
            page = notion_api.create_record("db-1", {"Name": {"title": []}})

        assert page["id"] == "new"
        assert mock_post.call_args.args[0] == "https://api.notion.com/v1/pages"
        assert mock_post.call_args.kwargs["json"]["parent"] == {"database_id": "db-1"}


class TestDeleteRecord:
    def test_deleted(self):
        with patch("renovation_hub.notion_api.requests.delete", return_value=http_response(200)) as mock_delete:
            assert notion_api.delete_record("p1") is True
        assert mock_delete.call_args.args[0] == "https://api.notion.com/v1/blocks/p1"

    def test_not_found_is_not_fatal(self):
        with patch("renovation_hub.notion_api.requests.delete", return_value=http_response(404)):
            assert notion_api.delete_record("p1") is False

    def test_already_archived_is_not_fatal(self):
        response = http_response(400, text='{"message": "Can\'t edit block that is archived."}')
        with patch("renovation_hub.notion_api.requests.delete", return_value=response):
            assert notion_api.delete_record("p1") is False

    def test_other_errors_raise(self):
        with patch("renovation_hub.notion_api.requests.delete", return_value=http_response(500, text="oops")):
            with pytest.raises(requests.HTTPError):
                notion_api.delete_record("p1")
