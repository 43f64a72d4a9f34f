"""
Text utilities for chat replies.

Crew output is markdown written for web pages; chat replies are sent as
plain text, so most of the markup is dropped and long results are split
into message-sized parts.
"""

import re

MAX_MESSAGE_LENGTH = 1900

_LINK = re.compile(r'\[.*?\]\(.*?\)')
_EXTRA_NEWLINES = re.compile(r'\n{3,}')


def clean_markdown(text: str) -> str:
    """
    Strip markdown that renders badly as plain text.

    - "##" headers become bold markers, then all bold markers are removed
    - code fences are removed
    - links are removed entirely (text and URL)
    - runs of 3+ newlines collapse to a blank line
    """
    if not text:
        return ''

    # Each step can expose a pattern an earlier one removed, e.g. "#**#"
    while True:
        cleaned = text.replace('##', '**')
        cleaned = cleaned.replace('**', '')
        cleaned = cleaned.replace('```', '')
        cleaned = _LINK.sub('', cleaned)
        cleaned = _EXTRA_NEWLINES.sub('\n\n', cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """
    Split text into chunks of at most max_length characters.

    Paragraphs (blank-line separated) are kept together when they fit.
    A paragraph longer than max_length is split on ". " sentence
    boundaries; a single sentence longer than max_length is cut hard.
    Chunks are stripped and never empty.
    """
    chunks: list[str] = []
    current = ''

    def flush() -> None:
        nonlocal current
        if current.strip():
            chunks.append(current.strip())
        current = ''

    def add(piece: str) -> None:
        nonlocal current
        if len((current + piece).rstrip()) <= max_length:
            current += piece
            return

        flush()
        while len(piece.rstrip()) > max_length:
            chunks.append(piece[:max_length].strip())
            piece = piece[max_length:]
        current = piece

    for paragraph in text.split('\n\n'):
        if len(paragraph) <= max_length:
            add(paragraph + '\n\n')
            continue

        sentences = paragraph.split('. ')
        for i, sentence in enumerate(sentences):
            last = i == len(sentences) - 1
            add(sentence + ('\n\n' if last else '. '))

    flush()
    return [chunk for chunk in chunks if chunk]
