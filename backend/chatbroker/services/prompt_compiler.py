"""
Prompt Compiler Service

Combines the deployment-wide system prompt file with the optional
per-request system prompt, and derives conversation titles and
subtitles from message text.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PROMPT_SEPARATOR = "\n-----\n"
TITLE_LENGTH = 50
SUBTITLE_WORDS = 5


def load_file_system_prompt(path: str | Path) -> str:
    """Read the system prompt file; a missing file yields an empty prompt."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(
            "Could not read system prompt file at %s, using request prompt only: %s",
            path,
            e,
        )
        return ""


def compile_system_prompt(file_prompt: str, request_prompt: str | None = None) -> str:
    """
    Compile the system prompt for a new conversation.

    Args:
        file_prompt: Content of the system prompt file (may be empty)
        request_prompt: Prompt supplied with the chat request

    Returns:
        Both prompts joined by the separator, or whichever one is non-empty
    """
    if not request_prompt:
        return file_prompt
    if not file_prompt:
        return request_prompt
    return f"{file_prompt}{PROMPT_SEPARATOR}{request_prompt}"


def truncate(text: str, length: int = TITLE_LENGTH) -> str:
    if len(text) > length:
        return f"{text[:length]}..."
    return text


def make_title(message: str) -> str:
    return truncate(message)


def make_subtitle(message: str) -> str:
    words = message.split(" ")
    subtitle = " ".join(words[:SUBTITLE_WORDS])
    if len(words) > SUBTITLE_WORDS:
        subtitle += "..."
    return subtitle
