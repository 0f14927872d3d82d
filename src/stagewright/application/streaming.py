"""Consumption of streaming agent output."""

import logging
from collections.abc import AsyncIterator, Callable

from stagewright.application.response_parser import parse_agent_response
from stagewright.domain.exceptions import ExecutorFailure
from stagewright.domain.models import AgentResult, StageId, StreamEvent

logger = logging.getLogger(__name__)


async def consume_stream(
    events: AsyncIterator[StreamEvent],
    on_delta: Callable[[str], None] | None = None,
    stage_id: StageId | None = None,
) -> AgentResult:
    """
    Drain a stream of agent events into a single AgentResult.

    Each delta is appended to a running buffer and on_delta receives the
    whole buffer so far, so a caller can mirror it into a stage's output.
    A "complete" event ends the stream: its result is returned as is, or,
    if it carries only text, that text (or the buffer) is parsed as an
    agent response. A stream that ends without "complete" is parsed from
    the buffer.

    Raises:
        ExecutorFailure: On an "error" event or an unparseable buffer
    """
    buffer: list[str] = []
    async for event in events:
        if event.kind == "delta":
            buffer.append(event.text)
            if on_delta is not None:
                on_delta("".join(buffer))
        elif event.kind == "status":
            logger.debug("Stream status for %s: %s", stage_id, event.text)
        elif event.kind == "complete":
            if event.result is not None:
                return event.result
            return parse_agent_response(event.text or "".join(buffer), stage_id)
        elif event.kind == "error":
            raise ExecutorFailure(event.text or "Stream reported an error", stage_id)
        else:
            logger.warning("Ignoring unknown stream event kind %r", event.kind)

    return parse_agent_response("".join(buffer), stage_id)
