"""WebSocket log feed addressing."""

from __future__ import annotations

from clickploy.api.log_feed import WebSocketLogFeed, stream_url
from clickploy.config.schema import Session


def test_http_becomes_ws():
    assert stream_url("http://localhost:8080", "d1") == "ws://localhost:8080/api/deployments/d1/logs/stream"


def test_https_becomes_wss():
    assert stream_url("https://deploy.example.com/", "d1") == "wss://deploy.example.com/api/deployments/d1/logs/stream"


def test_feed_keeps_server_url():
    feed = WebSocketLogFeed(Session(server_url="http://clickploy.test", api_key="k"))
    assert feed.server_url == "http://clickploy.test"
