"""
Webhook result correlator.

The crew API gives back a task id on submission, but the results it posts
to the capture endpoint do not carry that id. The only thing a result has
in common with its request is the echoed query text (input.query_post),
so results are matched to pending tasks by text containment:

    match = query in command_args or command_args in query   (case-insensitive)

Each poll:
1. Fetch captured deliveries (newest first)
2. Skip deliveries already in the ledger
3. Parse each new delivery, test it against EVERY pending task
4. Reply to each matching task and drop it from the store
5. Record the delivery id, then compact the ledger

One delivery may match several pending tasks (overlapping commands); all
of them get the reply. A task is consumed at most once.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError
from telegram.ext import ContextTypes

from app.crew.schemas import CapturedRequest, TaskResultPayload
from app.services.extraction import extract_relevant_data
from app.services.task_store import (
    Originator,
    PendingTaskContext,
    ProcessedDeliveryLedger,
    ResultStore,
)
from app.telegram_bot.api_client import CrewAPIClient
from app.telegram_bot.logging_config import bot_logger as logger
from app.utils.text import MAX_MESSAGE_LENGTH, split_message

ReplySender = Callable[[Originator, str], Awaitable[None]]

EMPTY_RESULT_MESSAGE = "No results were returned from the API. Please try again."
FORMAT_ERROR_MESSAGE = "⚠️ Error formatting results."


def queries_match(a: str, b: str) -> bool:
    """Case-insensitive containment in either direction."""
    a, b = a.lower(), b.lower()
    return a in b or b in a


def match_text(context: PendingTaskContext) -> str:
    """Text a pending task is matched on: the command arguments, or the whole command if it had none."""
    return context.argument_text or context.original_text.strip()


@dataclass
class PollSummary:
    """Counters for one poll run."""
    fetched: int = 0
    new: int = 0
    skipped: int = 0  # blank or unparseable content
    unmatched: int = 0
    failed: int = 0
    tasks_completed: int = 0
    ledger_dropped: int = 0


class WebhookCorrelator:
    """Matches captured webhook results to pending tasks and replies."""

    def __init__(
        self,
        store: ResultStore,
        ledger: ProcessedDeliveryLedger,
        client: CrewAPIClient,
        send_reply: ReplySender,
        max_message_chars: int = MAX_MESSAGE_LENGTH,
        pending_ttl: timedelta = timedelta(minutes=60),
    ):
        self.store = store
        self.ledger = ledger
        self.client = client
        self.send_reply = send_reply
        self.max_message_chars = max_message_chars
        self.pending_ttl = pending_ttl

    async def poll_once(self) -> Optional[PollSummary]:
        """
        Run one poll over the capture endpoint.

        Returns None when the capture endpoint could not be read; the next
        scheduled run simply tries again.
        """
        logger.info("Fetching webhook results...")
        try:
            requests = await self.client.fetch_captured_requests()
        except Exception as e:
            logger.error(f"Error retrieving webhook data: {e}", exc_info=True)
            return None

        summary = PollSummary(fetched=len(requests))
        logger.info(f"Found {len(requests)} webhook requests, {len(self.store)} pending tasks")

        for request in requests:
            if self.ledger.contains(request.uuid):
                continue

            summary.new += 1
            try:
                matched = await self.process_delivery(request)
                if matched is None:
                    summary.skipped += 1
                elif matched == 0:
                    summary.unmatched += 1
                else:
                    summary.tasks_completed += matched
            except Exception as e:
                summary.failed += 1
                logger.error(f"Error processing webhook response {request.uuid}: {e}", exc_info=True)
            finally:
                self.ledger.add(request.uuid)

        summary.ledger_dropped = self.ledger.compact()
        if summary.ledger_dropped:
            logger.info(f"Compacted processed ids, dropped {summary.ledger_dropped}")

        logger.info(f"Poll done: {summary}")
        return summary

    async def process_delivery(self, request: CapturedRequest) -> Optional[int]:
        """
        Handle one new delivery.

        Returns number of tasks completed, or None if the content was
        blank or could not be parsed.
        """
        logger.info(f"Processing new webhook response: {request.uuid}")

        if not request.content or not request.content.strip():
            logger.warning(f"Empty webhook content in {request.uuid}, skipping")
            return None

        try:
            result = TaskResultPayload.model_validate_json(request.content)
        except ValidationError as e:
            logger.warning(f"Unparseable webhook content in {request.uuid}: {e.error_count()} error(s)")
            return None

        query_text = result.query_text
        if query_text is None:
            logger.warning(f"Webhook {request.uuid} has no input.query_post, cannot match")
            return 0

        logger.info(f"Query text from webhook: {query_text!r}")

        completed = 0
        for context in self.store.iterate_all():
            command_text = match_text(context)
            if not queries_match(query_text, command_text):
                continue

            # Jobs interleave at await points; the task may be gone already
            if self.store.delete(context.task_id) is None:
                continue

            logger.info(f"Found matching task_id={context.task_id} for query {query_text!r}")
            context.cancel_stale_notice()
            await self.deliver_result(result, context)
            completed += 1

        if not completed:
            logger.warning(f"No matching task found for query: {query_text!r}")

        return completed

    async def deliver_result(self, result: TaskResultPayload, context: PendingTaskContext) -> None:
        """Format a result for its category and send it, split into parts if long."""
        try:
            text = extract_relevant_data(result, context.category)
            logger.info(f"Extracted {len(text)} chars for task_id={context.task_id}")

            if not text.strip():
                text = EMPTY_RESULT_MESSAGE

            if len(text) <= self.max_message_chars:
                await self.send_reply(context.originator, text)
                return

            chunks = split_message(text, self.max_message_chars)
            for index, chunk in enumerate(chunks, start=1):
                await self.send_reply(context.originator, f"Part {index}/{len(chunks)}:\n{chunk}")

        except Exception as e:
            logger.error(f"Error formatting response for task_id={context.task_id}: {e}", exc_info=True)
            try:
                await self.send_reply(context.originator, FORMAT_ERROR_MESSAGE)
            except Exception as send_error:
                logger.error(f"Failed to send error notice for task_id={context.task_id}: {send_error}")

    async def expire_pending(self) -> list[PendingTaskContext]:
        """Drop tasks that waited longer than pending_ttl and tell their requesters."""
        expired = self.store.expire_older_than(self.pending_ttl)

        for context in expired:
            context.cancel_stale_notice()
            logger.warning(f"Task {context.task_id} expired without a result")
            minutes = int(self.pending_ttl.total_seconds() // 60)
            try:
                await self.send_reply(
                    context.originator,
                    f"⌛ No results for task {context.task_id} after {minutes} minutes. Giving up."
                )
            except Exception as e:
                logger.warning(f"Failed to send expiry notice for task_id={context.task_id}: {e}")

        return expired

    # JobQueue callbacks

    async def poll_job(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.poll_once()

    async def expiry_job(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.expire_pending()
