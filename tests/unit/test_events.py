"""Unit tests for outbound event delivery retry logic"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from quote_engine.domain.exceptions import EventDeliveryError
from quote_engine.infrastructure.clients.events import CONTRACT_SIGNED, EventPublisher

WEBHOOK_URL = "http://events.test/hooks"


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", WEBHOOK_URL))


@pytest.mark.asyncio
@patch("quote_engine.infrastructure.clients.events.asyncio.sleep", new_callable=AsyncMock)
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_send_retries_until_success(mock_post: AsyncMock, mock_sleep: AsyncMock):
    mock_post.side_effect = [_response(503), _response(502), _response(200)]
    publisher = EventPublisher(webhook_url=WEBHOOK_URL)

    attempts = await publisher.send(CONTRACT_SIGNED, {"contract_id": "c-1"})

    assert attempts == 3
    assert mock_post.await_args.kwargs["json"] == {"event": CONTRACT_SIGNED, "contract_id": "c-1"}
    assert [call.args[0] for call in mock_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
@patch("quote_engine.infrastructure.clients.events.asyncio.sleep", new_callable=AsyncMock)
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_send_gives_up_after_max_retries(mock_post: AsyncMock, mock_sleep: AsyncMock):
    mock_post.side_effect = httpx.ConnectError("refused")
    publisher = EventPublisher(webhook_url=WEBHOOK_URL)

    with pytest.raises(EventDeliveryError):
        await publisher.send(CONTRACT_SIGNED, {"contract_id": "c-1"})

    assert mock_post.await_count == publisher.max_retries


@pytest.mark.asyncio
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_deliver_without_webhook_is_a_no_op(mock_post: AsyncMock):
    publisher = EventPublisher(webhook_url="")

    await publisher.deliver("event-id", CONTRACT_SIGNED, {"contract_id": "c-1"})

    mock_post.assert_not_awaited()


@pytest.mark.asyncio
@patch.object(EventPublisher, "send", new_callable=AsyncMock)
async def test_deliver_swallows_delivery_failure(mock_send: AsyncMock):
    mock_send.side_effect = EventDeliveryError("down")
    publisher = EventPublisher(webhook_url=WEBHOOK_URL)

    await publisher.deliver("event-id", CONTRACT_SIGNED, {"contract_id": "c-1"})

    mock_send.assert_awaited_once()


@pytest.mark.asyncio
@patch("quote_engine.infrastructure.clients.events.OutboundEventRepository")
@patch.object(EventPublisher, "send", new_callable=AsyncMock)
async def test_deliver_records_success_in_own_session(mock_send: AsyncMock, mock_repo: MagicMock):
    mock_send.return_value = 2
    session = MagicMock()
    publisher = EventPublisher(webhook_url=WEBHOOK_URL, session_factory=lambda: session)

    await publisher.deliver("event-id", CONTRACT_SIGNED, {"contract_id": "c-1"})

    mock_repo.assert_called_once_with(session)
    mock_repo.return_value.record_attempt.assert_called_once_with("event-id", 2, True)
    session.commit.assert_called_once()
    session.close.assert_called_once()


@pytest.mark.asyncio
@patch("quote_engine.infrastructure.clients.events.run_in_threadpool", new_callable=AsyncMock)
@patch.object(EventPublisher, "send", new_callable=AsyncMock)
async def test_deliver_records_failure_off_the_event_loop(mock_send: AsyncMock, mock_threadpool: AsyncMock):
    mock_send.side_effect = EventDeliveryError("down")
    publisher = EventPublisher(webhook_url=WEBHOOK_URL, session_factory=MagicMock())

    await publisher.deliver("event-id", CONTRACT_SIGNED, {"contract_id": "c-1"})

    mock_threadpool.assert_awaited_once_with(publisher._record_outcome, "event-id", publisher.max_retries, False)
