"""Model pricing and cost calculation utilities."""

import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)


class ModelPricing(NamedTuple):
    input: float
    cache_write: float
    cache_read: float
    output: float


# Per 1M tokens. Order matters: the first matching prefix wins, so more
# specific prefixes must come before their shorter siblings.
PRICING_TABLE: list[tuple[str, ModelPricing]] = [
    ("claude-opus-4",      ModelPricing(input=15.00, cache_write=18.75, cache_read=1.50,  output=75.00)),
    ("claude-sonnet-4",    ModelPricing(input=3.00,  cache_write=3.75,  cache_read=0.30,  output=15.00)),
    ("claude-haiku-4",     ModelPricing(input=0.80,  cache_write=1.00,  cache_read=0.08,  output=4.00)),
    ("gpt-5.3-codex",      ModelPricing(input=1.75,  cache_write=0.0,   cache_read=0.175, output=14.00)),
    ("gpt-5.1-codex-mini", ModelPricing(input=0.25,  cache_write=0.0,   cache_read=0.025, output=2.00)),
    ("gpt-5-codex",        ModelPricing(input=1.25,  cache_write=0.0,   cache_read=0.125, output=10.00)),
]

FALLBACK_PRICING = PRICING_TABLE[1][1]

_DISPLAY_NAMES: list[tuple[str, str]] = [
    ("claude-opus-4", "Opus 4"),
    ("claude-sonnet-4", "Sonnet 4"),
    ("claude-haiku-4", "Haiku 4"),
    ("gpt-5.3-codex", "GPT-5.3 Codex"),
    ("gpt-5.1-codex-mini", "GPT-5.1 Mini"),
    ("gpt-5-codex", "GPT-5 Codex"),
]


def match_pricing(model: str) -> ModelPricing | None:
    """Match a model string to its pricing entry by prefix."""
    for prefix, pricing in PRICING_TABLE:
        if model.startswith(prefix):
            return pricing
    return None


def calculate_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    cache_write_tokens: int,
    cache_read_tokens: int,
) -> float:
    """Calculate cost in USD for the given token counts and model.

    Unknown models are priced at the Sonnet tier.
    """
    pricing = match_pricing(model)
    if pricing is None:
        logger.warning("Unknown model '%s', falling back to Sonnet pricing", model)
        pricing = FALLBACK_PRICING
    return (
        input_tokens * pricing.input
        + output_tokens * pricing.output
        + cache_write_tokens * pricing.cache_write
        + cache_read_tokens * pricing.cache_read
    ) / 1_000_000


def is_placeholder_model(model: str) -> bool:
    """Empty names and ``<synthetic>``-style placeholders carry no model identity."""
    return not model or model.startswith("<")


def format_model_name(model: str) -> str:
    """Short display name for known model families; unknown names pass through."""
    for prefix, name in _DISPLAY_NAMES:
        if model.startswith(prefix):
            return name
    if is_placeholder_model(model):
        return ""
    return model
