"""
Chunk Normalizer

Turns a vendor-shaped streaming chunk into a plain text delta.

Recognized shapes:
- chat-completions style: chunk.choices[0].delta.content  (OpenAI)
- event style:            chunk.delta.text                (Anthropic content_block_delta)

SDK chunks are objects, but recorded or proxied chunks are often plain
dicts, so both attribute and key access are supported. Anything
unrecognized normalizes to "" so a single odd chunk never breaks a stream.
"""

from typing import Any

from chatbroker.services.llm.models import Provider


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _choices_delta(chunk: Any) -> str | None:
    choices = _field(chunk, "choices")
    if not choices:
        return None
    try:
        first = choices[0]
    except (IndexError, KeyError, TypeError):
        return None
    content = _field(_field(first, "delta"), "content")
    return content if isinstance(content, str) else None


def _event_delta(chunk: Any) -> str | None:
    text = _field(_field(chunk, "delta"), "text")
    return text if isinstance(text, str) else None


_EXTRACTORS = {
    Provider.OPENAI: (_choices_delta, _event_delta),
    Provider.ANTHROPIC: (_event_delta, _choices_delta),
}


def extract_delta(chunk: Any, provider: Provider | None = None) -> str:
    """
    Extract the text delta from a streaming chunk.

    Args:
        chunk: Vendor chunk (SDK object or mapping)
        provider: Optional hint; only changes which shape is tried first

    Returns:
        The text delta, or "" for unknown/empty shapes
    """
    extractors = _EXTRACTORS.get(provider, (_choices_delta, _event_delta))
    for extract in extractors:
        try:
            text = extract(chunk)
        except Exception:
            # A chunk with a hostile __getattr__ still must not break the stream
            text = None
        if text is not None:
            return text
    return ""
