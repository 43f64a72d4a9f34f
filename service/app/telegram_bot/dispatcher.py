"""
Query dispatcher - picks the result category for a command.

The category only decides which stage of the crew output is shown to the
user, see app.services.extraction.
"""

import re

RESEARCH = "research"
BLOG = "blog"
TWITTER = "twitter"
GENERAL = "general"

CATEGORIES = (RESEARCH, BLOG, TWITTER, GENERAL)

_X_TOKEN = re.compile(r"(?<![a-z0-9])x(?![a-z0-9])")


def classify_query(text: str) -> str:
    """
    Classify command text into one category.

    Checked in priority order, first hit wins:
        "research"              -> research
        "blog" / "copywriting"  -> blog
        "twitter" / token "x"   -> twitter
        anything else           -> general
    """
    query = (text or "").lower()

    if "research" in query:
        return RESEARCH
    if "blog" in query or "copywriting" in query:
        return BLOG
    if "twitter" in query or _X_TOKEN.search(query):
        return TWITTER
    return GENERAL
