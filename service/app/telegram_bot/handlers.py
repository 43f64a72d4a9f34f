"""
Telegram message and command handlers.

FLOW FOR A CREW COMMAND:
========================
"!runcrew write a blog about cats"

1. Acknowledge immediately ("Processing your request...")
2. Submit the argument text to the crew API -> task id
3. Classify the query (research / blog / twitter / general)
4. Register a PendingTaskContext in the ResultStore
5. Reply with the task id
6. Arm a one-shot "still waiting" notice

The result itself arrives later through the capture endpoint and is
delivered by WebhookCorrelator, not by this module.
"""

from telegram import Update
from telegram.ext import ContextTypes

from app.services.correlator import ReplySender
from app.services.task_store import (
    Originator,
    PendingTaskContext,
    ResultStore,
    command_argument,
)
from .api_client import CrewAPIClient
from .dispatcher import classify_query
from .logging_config import bot_logger as logger

PROCESSING_MESSAGE = "🔄 Processing your request..."
SUBMIT_ERROR_MESSAGE = "❌ Error processing your request. Please try again later."
STILL_WAITING_MESSAGE = "⏳ Still waiting for results. This may take a few more minutes."


class RunCrewHandler:
    """
    Handles trigger-prefixed messages.

    Registered as a MessageHandler callback; state is injected so the
    handler can be tested without a running Application.
    """

    def __init__(
        self,
        store: ResultStore,
        client: CrewAPIClient,
        send_reply: ReplySender,
        stale_notice_seconds: float = 60,
    ):
        self.store = store
        self.client = client
        self.send_reply = send_reply
        self.stale_notice_seconds = stale_notice_seconds

    async def __call__(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        user = update.effective_user

        if message is None or not message.text:
            return
        if user is not None and user.is_bot:
            return

        text = message.text
        logger.info(f"Received command from user_id={user.id if user else None}: {text!r}")

        await message.reply_text(PROCESSING_MESSAGE, do_quote=True)

        query = command_argument(text)
        try:
            task_id = await self.client.create_task(query)
        except Exception as e:
            logger.error(f"Task submission failed for chat_id={message.chat_id}: {e}", exc_info=True)
            await message.reply_text(SUBMIT_ERROR_MESSAGE, do_quote=True)
            return

        task_context = PendingTaskContext(
            task_id=task_id,
            original_text=text,
            category=classify_query(query),
            originator=Originator(
                chat_id=message.chat_id,
                message_id=message.message_id,
                user_id=user.id if user else None,
                username=user.username if user else None,
            ),
        )
        self.store.put(task_id, task_context)
        logger.info(f"Task created: task_id={task_id}, category={task_context.category}")

        await message.reply_text(f"🚀 Task created successfully!\nTask ID: {task_id}", do_quote=True)

        if context.job_queue is not None:
            task_context.stale_job = context.job_queue.run_once(
                self.stale_notice,
                when=self.stale_notice_seconds,
                data=task_id,
                name=f"stale:{task_id}",
            )

    async def stale_notice(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        """One-shot job: tell the requester we are still waiting."""
        task_id = context.job.data
        pending = self.store.get(task_id)
        if pending is None:
            return

        pending.stale_job = None
        logger.info(f"Task {task_id} still pending, sending notice")
        await self.send_reply(pending.originator, STILL_WAITING_MESSAGE)


async def handle_start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    user = update.effective_user
    name = user.first_name if user else "there"
    prefix = context.bot_data.get("trigger_prefix", "!runcrew")

    welcome_text = f"""👋 Hi, {name}!

I pass your requests to the crew and bring back the results.

How to use:
• {prefix} research the history of tea
• {prefix} write a blog about cats
• {prefix} twitter thread on remote work

Results usually take a few minutes. I'll reply to your message when they are ready."""

    await update.message.reply_text(welcome_text)


async def handle_help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    prefix = context.bot_data.get("trigger_prefix", "!runcrew")

    help_text = f"""📖 How to use the crew bot

Send {prefix} followed by your request.

What you get back depends on the words in the request:
• "research" → summary and key insights
• "blog" or "copywriting" → the blog post
• "twitter" or "x" → the thread
• anything else → the crew's final result

Long results arrive in several parts.

Commands:
/start — bot info
/help — this help"""

    await update.message.reply_text(help_text)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in handlers."""
    logger.error(f"Bot error: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(
            "❌ Error processing message.\n"
            "Try again or use /help"
        )
