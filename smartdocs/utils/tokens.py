"""
Token accounting helpers

Counting uses tiktoken; persisted per-message counts use the cheaper
characters/4 estimate so they stay stable across model changes.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import tiktoken

from smartdocs.core.plans import CONTEXT_CONFIG, get_context_limits

logger = logging.getLogger(__name__)

COST_PER_1K_TOKENS = 0.0015
MESSAGE_OVERHEAD_TOKENS = 4


def _get_encoding(model: str):
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding("cl100k_base")


def estimate_text_tokens(text: Optional[str]) -> int:
    """Rough estimate: one token per four characters, rounded up"""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def count_tokens(text: Optional[str], model: str = CONTEXT_CONFIG["DEFAULT_MODEL"]) -> int:
    if not text:
        return 0
    try:
        return len(_get_encoding(model).encode(text))
    except Exception as e:
        logger.warning(f"Token encoding failed, using estimate: {e}")
        return estimate_text_tokens(text)


def _field(message: Any, name: str) -> str:
    if isinstance(message, dict):
        return message.get(name) or ""
    return getattr(message, name, None) or ""


def count_messages_tokens(messages: List[Any], model: str = CONTEXT_CONFIG["DEFAULT_MODEL"]) -> int:
    """
    Tokens for a chat transcript

    Each message costs its content and role tokens plus a fixed overhead of 4.
    Accepts dicts or objects with role/content attributes.
    """
    total = 0
    for message in messages:
        total += count_tokens(_field(message, "content"), model)
        total += count_tokens(_field(message, "role"), model)
        total += MESSAGE_OVERHEAD_TOKENS
    return total


def should_summarize(messages: List[Any], tier) -> bool:
    if len(messages) <= CONTEXT_CONFIG["MIN_MESSAGES_TO_KEEP"]:
        return False
    threshold = get_context_limits(tier)["summarize_threshold"]
    return count_messages_tokens(messages) >= threshold


def calculate_message_split(messages: List[Any], tier) -> Tuple[List[Any], List[Any]]:
    """
    Split a transcript into (to_keep, to_summarize)

    Walks from the newest message backwards. A message stays active while it
    fits in the tier's max_active_tokens, and the newest MIN_MESSAGES_TO_KEEP
    messages are always kept. Both lists come back in chronological order.
    """
    max_tokens = get_context_limits(tier)["max_active_tokens"]
    min_keep = CONTEXT_CONFIG["MIN_MESSAGES_TO_KEEP"]

    to_keep = []
    kept_tokens = 0
    split_index = 0

    for index in range(len(messages) - 1, -1, -1):
        message_tokens = count_messages_tokens([messages[index]])
        if kept_tokens + message_tokens <= max_tokens or len(to_keep) < min_keep:
            to_keep.insert(0, messages[index])
            kept_tokens += message_tokens
        else:
            split_index = index + 1
            break

    return to_keep, list(messages[:split_index])


def estimate_token_savings(original_messages: List[Any], summary: str) -> Dict[str, float]:
    original_tokens = count_messages_tokens(original_messages)
    summary_tokens = count_tokens(summary)
    tokens_saved = max(original_tokens - summary_tokens, 0)
    percentage_saved = round(tokens_saved / original_tokens * 100, 1) if original_tokens else 0
    return {
        "tokens_saved": tokens_saved,
        "percentage_saved": percentage_saved,
        "cost_saved": round(tokens_saved / 1000 * COST_PER_1K_TOKENS, 6),
    }


def format_token_count(count: int) -> str:
    if count < 1000:
        return f"{count} tokens"
    if count < 1000000:
        return f"{count / 1000:.1f}K tokens"
    return f"{count / 1000000:.1f}M tokens"


def get_token_usage_percentage(used: int, limit: int) -> float:
    if limit <= 0:
        return 0
    return min(used / limit * 100, 100)


def get_usage_status(percentage: float) -> str:
    if percentage >= 90:
        return "critical"
    if percentage >= 75:
        return "warning"
    return "safe"
