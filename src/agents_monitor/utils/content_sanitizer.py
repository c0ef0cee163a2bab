"""Prompt preview extraction helpers, skipping injected system content."""

# Codex injects its own instructions as user input_text items.
_CODEX_SYSTEM_PREFIXES = ("<", "#", "You are")


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` code points."""
    return text[:limit]


def is_tag_wrapped(text: str) -> bool:
    """Content like ``<command-name>`` or ``<system-reminder>`` blocks is not user-typed."""
    return text.startswith("<")


def looks_like_codex_system_text(text: str) -> bool:
    return text.startswith(_CODEX_SYSTEM_PREFIXES)


def extract_claude_user_text(message) -> str | None:
    """First user-authored text of a Claude ``message`` object.

    Only the first text item is considered; tag-wrapped content yields None.
    """
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return None if is_tag_wrapped(content) else content
    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            text = block.get("text")
            if isinstance(text, str):
                return None if is_tag_wrapped(text) else text
    return None


def extract_codex_user_text(payload, limit: int = 200) -> str | None:
    """First real prompt in a Codex ``response_item`` payload with role ``user``."""
    if not isinstance(payload, dict) or payload.get("role") != "user":
        return None
    content = payload.get("content")
    if not isinstance(content, list):
        return None
    for item in content:
        if not isinstance(item, dict) or item.get("type") != "input_text":
            continue
        text = item.get("text")
        if not isinstance(text, str):
            continue
        text = text.strip()
        if looks_like_codex_system_text(text):
            continue
        return truncate(text, limit)
    return None
