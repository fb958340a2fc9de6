"""Unit tests for the portfolio event webhook client"""

import asyncio
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from exposure_gateway.infrastructure.clients.events import EventClient

URL = "http://events.test/portfolio-events"


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", URL))


@patch("exposure_gateway.infrastructure.clients.events.asyncio.sleep", new_callable=AsyncMock)
def test_send_event_retries_then_succeeds(mock_sleep: AsyncMock):
    """Network failure and 5xx are retried with exponential backoff"""
    client = EventClient(webhook_url=URL)
    post = AsyncMock(side_effect=[httpx.ConnectError("down"), _response(503), _response(200)])

    with patch.object(httpx.AsyncClient, "post", post):
        asyncio.run(client.send_event({"event": "LOAN_SETTLED"}))

    assert post.call_count == 3
    delays = [c.args[0] for c in mock_sleep.call_args_list]
    assert delays == [client.backoff_base, client.backoff_base * 2]


@patch("exposure_gateway.infrastructure.clients.events.asyncio.sleep", new_callable=AsyncMock)
def test_send_event_gives_up_after_max_retries(mock_sleep: AsyncMock):
    client = EventClient(webhook_url=URL)
    post = AsyncMock(return_value=_response(500))

    with patch.object(httpx.AsyncClient, "post", post):
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(client.send_event({"event": "LOAN_SETTLED"}))

    assert post.call_count == client.max_retries
