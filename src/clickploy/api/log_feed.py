"""Live deployment log feed over a WebSocket."""

from __future__ import annotations

from typing import AsyncGenerator, Protocol

import aiohttp

from clickploy.config.schema import Session


class LogFeed(Protocol):
    """Streaming subscription to one deployment's log output."""

    def stream(self, deployment_id: str) -> AsyncGenerator[str, None]:
        """Yield text chunks in arrival order until the remote side closes."""
        ...


def stream_url(server_url: str, deployment_id: str) -> str:
    base = server_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/api/deployments/{deployment_id}/logs/stream"


class WebSocketLogFeed:
    """Log feed backed by ``aiohttp`` WebSocket connections.

    Transport errors propagate out of ``stream``; there is no reconnect.
    """

    def __init__(self, session: Session, *, heartbeat: float | None = 20.0) -> None:
        self.server_url = session.server_url
        self._headers = {"Authorization": session.api_key}
        self._heartbeat = heartbeat

    async def stream(self, deployment_id: str) -> AsyncGenerator[str, None]:
        url = stream_url(self.server_url, deployment_id)
        async with aiohttp.ClientSession(headers=self._headers) as http:
            async with http.ws_connect(url, heartbeat=self._heartbeat) as ws:
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        yield msg.data
                    elif msg.type == aiohttp.WSMsgType.BINARY:
                        yield msg.data.decode("utf-8", errors="replace")
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise ws.exception() or aiohttp.ClientError("websocket error")
                    else:
                        break
