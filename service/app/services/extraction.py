"""
Result extraction: crew webhook payload -> chat reply text.

Which part of the crew output is shown depends on the query category:
- research: stage 1 summary + stage 2 insights
- blog: stage 2 (the written post)
- twitter: stage 3 (the thread)
Anything else falls back to the top-level result, then to stage 1.
"""

import json
from typing import Any

from app.crew.schemas import TaskResultPayload
from app.telegram_bot.dispatcher import RESEARCH, BLOG, TWITTER
from app.telegram_bot.logging_config import bot_logger as logger
from app.utils.text import clean_markdown

NO_RESULTS_MESSAGE = "No results data found in the response."
EXTRACTION_ERROR_MESSAGE = "Error processing the result data. Please check the logs."

RESEARCH_HEADER = "📚 Research Summary 📚"
RESEARCH_INSIGHTS_HEADER = "🔍 Key Insights:"
BLOG_HEADER = "📝 Blog Post 📝"
TWITTER_HEADER = "🐦 Twitter Thread 🐦"
RESULTS_HEADER = "ℹ️ Task Results ℹ️"


def _as_text(value: Any) -> str:
    """Stage results are normally strings; numbers and objects are shown as JSON-ish text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _clean(value: Any) -> str:
    return clean_markdown(_as_text(value))


def extract_relevant_data(result: TaskResultPayload, category: str) -> str:
    """
    Build reply text for a crew result. Never raises.

    Args:
        result: Parsed webhook payload
        category: Category from classify_query()

    Returns:
        Formatted text, or a fixed placeholder when there is nothing to show
    """
    try:
        outputs = result.task_output

        if category == RESEARCH and len(outputs) > 1:
            return (
                f"{RESEARCH_HEADER}\n{_clean(outputs[0].result)}\n\n"
                f"{RESEARCH_INSIGHTS_HEADER}\n{_clean(outputs[1].result)}"
            )
        if category == BLOG and len(outputs) > 1:
            return f"{BLOG_HEADER}\n{_clean(outputs[1].result)}"
        if category == TWITTER and len(outputs) > 2:
            return f"{TWITTER_HEADER}\n{_clean(outputs[2].result)}"
        if _as_text(result.result):
            return f"{RESULTS_HEADER}\n{_clean(result.result)}"
        if outputs:
            # First stage output when the crew returned no top-level result
            return f"{RESULTS_HEADER}\n{_clean(outputs[0].result)}"
        return NO_RESULTS_MESSAGE

    except Exception as e:
        logger.error(f"Error extracting data: {e}", exc_info=True)
        return EXTRACTION_ERROR_MESSAGE
