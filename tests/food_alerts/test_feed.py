"""Tests for the paginated feed client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from food_alerts.feed import FeedFetchError, extract_records, fetch_page, iter_pages, next_link


def make_response(body=None, status_error=None, json_error=None):
    resp = MagicMock()
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = body
    return resp


class TestExtractRecords:
    """Tests for extract_records and next_link."""

    def test_value_key(self):
        """Test the OData 'value' envelope."""
        assert extract_records({"value": [{"id": 1}]}) == [{"id": 1}]

    def test_records_key(self):
        """Test the alternative 'records' envelope."""
        assert extract_records({"records": [{"id": 2}]}) == [{"id": 2}]

    def test_missing_records(self):
        """Test that bodies without records give an empty list."""
        assert extract_records({"other": 1}) == []
        assert extract_records(["not", "a", "dict"]) == []

    def test_next_link_keys(self):
        """Test both next link spellings."""
        assert next_link({"@odata.nextLink": "https://a/2"}) == "https://a/2"
        assert next_link({"nextLink": "https://b/2"}) == "https://b/2"
        assert next_link({"value": []}) is None


class TestFetchPage:
    """Tests for fetch_page."""

    @patch("food_alerts.feed.requests.get")
    def test_fetches_page(self, mock_get):
        """Test that records and the next link are read from the page."""
        mock_get.return_value = make_response({
            "value": [{"notif_id": 1}, {"notif_id": 2}],
            "@odata.nextLink": "https://example.com/feed?page=2",
        })

        page = fetch_page("https://example.com/feed", timeout=5)

        assert len(page.records) == 2
        assert page.next_url == "https://example.com/feed?page=2"
        assert mock_get.call_args.kwargs["timeout"] == 5

    @patch("food_alerts.feed.requests.get")
    def test_transport_error(self, mock_get):
        """Test that connection errors become FeedFetchError."""
        mock_get.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(FeedFetchError):
            fetch_page("https://example.com/feed")

    @patch("food_alerts.feed.requests.get")
    def test_http_error(self, mock_get):
        """Test that non-2xx responses become FeedFetchError."""
        mock_get.return_value = make_response(status_error=requests.HTTPError("503 Server Error"))
        with pytest.raises(FeedFetchError):
            fetch_page("https://example.com/feed")

    @patch("food_alerts.feed.requests.get")
    def test_invalid_json(self, mock_get):
        """Test that an undecodable body becomes FeedFetchError."""
        mock_get.return_value = make_response(json_error=ValueError("Expecting value"))
        with pytest.raises(FeedFetchError):
            fetch_page("https://example.com/feed")


class TestIterPages:
    """Tests for iter_pages."""

    @patch("food_alerts.feed.requests.get")
    def test_follows_next_links_up_to_limit(self, mock_get):
        """Test that pagination stops at the page limit."""
        mock_get.side_effect = [
            make_response({"value": [{"id": 1}], "nextLink": "https://example.com/2"}),
            make_response({"value": [{"id": 2}], "nextLink": "https://example.com/3"}),
            make_response({"value": [{"id": 3}], "nextLink": "https://example.com/4"}),
        ]

        pages = list(iter_pages("https://example.com/1", page_limit=2))

        assert [p.url for p in pages] == ["https://example.com/1", "https://example.com/2"]
        assert mock_get.call_count == 2

    @patch("food_alerts.feed.requests.get")
    def test_stops_without_next_link(self, mock_get):
        """Test that pagination stops when there is no next link."""
        mock_get.return_value = make_response({"value": [{"id": 1}]})

        pages = list(iter_pages("https://example.com/1", page_limit=5))

        assert len(pages) == 1
        assert mock_get.call_count == 1
