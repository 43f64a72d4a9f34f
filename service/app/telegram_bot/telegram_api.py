"""
Telegram send helpers.

Replies for crew results are sent long after the originating update is
gone, so they go through the Bot with the stored chat/message ids.
"""

from telegram import Bot, ReplyParameters

from app.services.task_store import Originator


async def send_reply(bot: Bot, originator: Originator, text: str) -> None:
    """
    Reply to the message that started a task.

    Args:
        bot: Telegram bot instance
        originator: Chat and message the reply is threaded under
        text: Plain message text
    """
    await bot.send_message(
        chat_id=originator.chat_id,
        text=text,
        reply_parameters=ReplyParameters(
            message_id=originator.message_id,
            allow_sending_without_reply=True,
        ),
    )
