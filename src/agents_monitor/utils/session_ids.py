"""Map agent session ids onto canonical UUIDs."""

import logging
import uuid

logger = logging.getLogger(__name__)


def parse_session_uuid(session_id: str) -> uuid.UUID | None:
    """Parse an id that is already a canonical 8-4-4-4-12 UUID string."""
    if not isinstance(session_id, str) or len(session_id) != 36:
        return None
    try:
        return uuid.UUID(session_id)
    except ValueError:
        return None


def normalize_to_uuid(session_id: str) -> uuid.UUID | None:
    """Derive a UUID from the first 32 hex digits of ``session_id``.

    Returns None if the id doesn't contain enough hex digits.
    """
    hex_digits = "".join(c for c in session_id if c in "0123456789abcdefABCDEF")
    if len(hex_digits) < 32:
        return None
    return uuid.UUID(hex=hex_digits[:32])


def session_uuid_or_random(session_id: str) -> uuid.UUID:
    """Canonical UUID for ``session_id``, remapped from hex if needed.

    Falls back to a random UUID, which means the session gets a new
    identity on every discovery pass.
    """
    parsed = parse_session_uuid(session_id)
    if parsed is not None:
        return parsed
    remapped = normalize_to_uuid(session_id)
    if remapped is not None:
        return remapped
    synthesized = uuid.uuid4()
    logger.warning(
        "Session id %r has no UUID form, synthesized %s (not stable across refreshes)",
        session_id, synthesized,
    )
    return synthesized
