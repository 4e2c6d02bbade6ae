"""
Conversation Summarization Service

Keeps long project conversations inside the tier's context window by
condensing older messages into ConversationSummary rows. Summarized
messages stay in the database and are flagged in their metadata.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from smartdocs.core.plans import CONTEXT_CONFIG, get_context_limits
from smartdocs.models.conversation import Conversation
from smartdocs.models.conversation_summary import ConversationSummary
from smartdocs.models.message import Message
from smartdocs.prompts import PromptBuilder
from smartdocs.services.llm_service import LLMService
from smartdocs.utils.time import ensure_utc
from smartdocs.utils.tokens import (
    calculate_message_split,
    count_messages_tokens,
    count_tokens,
    get_token_usage_percentage,
    should_summarize,
)

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200


def format_message_range(messages: List[Any]) -> str:
    """Label like: Messages 1-N (<first date> to <last date>)"""
    first = ensure_utc(getattr(messages[0], "created_at", None)) if messages else None
    last = ensure_utc(getattr(messages[-1], "created_at", None)) if messages else None
    if first and last:
        span = f"{first.strftime('%Y-%m-%d %H:%M')} to {last.strftime('%Y-%m-%d %H:%M')}"
    else:
        span = "Unknown time range"
    return f"Messages 1-{len(messages)} ({span})"


def build_fallback_summary(messages: List[Any]) -> str:
    """Extractive summary used when the LLM is unavailable"""
    first_user = next((m for m in messages if m.role == "user"), messages[0])
    last = messages[-1]

    parts = [f"Conversation summary ({len(messages)} messages):"]
    parts.append(f"Started with: {first_user.content[:SNIPPET_LENGTH]}")
    if last is not first_user:
        parts.append(f"Recent: {last.content[:SNIPPET_LENGTH]}")
    parts.append(f"Total messages exchanged: {len(messages)}")
    return "\n\n".join(parts)


def is_summarized(message: Message) -> bool:
    return bool((message.metadata_ or {}).get("summarized"))


class SummarizationService:
    """
    Summarize and assemble conversation context

    Usage:
        service = SummarizationService(db)
        await service.manage_conversation_context(conversation_id, user.subscription_tier)
        context = service.build_ai_context(conversation_id)
    """

    def __init__(self, db: Session, llm: Optional[LLMService] = None, prompts: Optional[PromptBuilder] = None):
        self.db = db
        self.llm = llm or LLMService()
        self.prompts = prompts or PromptBuilder()

    def _messages(self, conversation_id: UUID) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .all()
        )

    def _summaries(self, conversation_id: UUID) -> List[ConversationSummary]:
        return (
            self.db.query(ConversationSummary)
            .filter(ConversationSummary.conversation_id == conversation_id)
            .order_by(ConversationSummary.created_at.asc())
            .all()
        )

    async def summarize_messages(self, messages: List[Any], tier, project: Optional[Any] = None) -> Dict[str, Any]:
        """
        Summarize a block of messages

        Args:
            messages: Messages in chronological order (at least one)
            tier: Subscription tier of the conversation owner
            project: Optional project for context (name, industry, stage)

        Returns:
            Dict with summary, original_token_count, summary_token_count, message_range
        """
        if not messages:
            raise ValueError("No messages to summarize")

        original_tokens = count_messages_tokens(messages)

        try:
            result = await self.llm.generate(
                self.prompts.summary_prompt(messages, project),
                max_tokens=CONTEXT_CONFIG["SUMMARY_TARGET_TOKENS"],
                temperature=0.3,
            )
            summary = result.content.strip() or build_fallback_summary(messages)
        except Exception as e:
            logger.warning(f"Summarization failed, using extractive fallback: {e}")
            summary = build_fallback_summary(messages)

        logger.debug(f"Summarized {len(messages)} messages for tier {tier}")
        return {
            "summary": summary,
            "original_token_count": original_tokens,
            "summary_token_count": count_tokens(summary),
            "message_range": format_message_range(messages),
        }

    async def manage_conversation_context(self, conversation_id: UUID, tier) -> Dict[str, Any]:
        """
        Summarize older messages once the active window passes the tier threshold

        Returns:
            {"action": "summarized" | "none", "tokens_saved": int, "active_tokens": int, ...}
        """
        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if not conversation:
            return {"action": "none", "tokens_saved": 0, "active_tokens": 0}

        active = [m for m in self._messages(conversation_id) if not is_summarized(m)]

        if not should_summarize(active, tier):
            active_tokens = count_messages_tokens(active)
            conversation.metadata_ = {**(conversation.metadata_ or {}), "active_tokens": active_tokens}
            self.db.commit()
            return {"action": "none", "tokens_saved": 0, "active_tokens": active_tokens}

        to_keep, to_summarize = calculate_message_split(active, tier)
        if not to_summarize:
            active_tokens = count_messages_tokens(to_keep)
            return {"action": "none", "tokens_saved": 0, "active_tokens": active_tokens}

        result = await self.summarize_messages(to_summarize, tier, conversation.project)

        summary = ConversationSummary(
            conversation_id=conversation.id,
            project_id=conversation.project_id,
            summary=result["summary"],
            original_token_count=result["original_token_count"],
            summary_token_count=result["summary_token_count"],
            message_range=result["message_range"],
        )
        self.db.add(summary)
        self.db.flush()

        for message in to_summarize:
            message.metadata_ = {**(message.metadata_ or {}), "summarized": True, "summary_id": str(summary.id)}

        active_tokens = count_messages_tokens(to_keep)
        conversation.metadata_ = {**(conversation.metadata_ or {}), "active_tokens": active_tokens}
        self.db.commit()

        tokens_saved = max(result["original_token_count"] - result["summary_token_count"], 0)
        logger.info(
            f"Summarized {len(to_summarize)} messages in conversation {conversation_id} "
            f"(saved {tokens_saved} tokens)"
        )
        return {
            "action": "summarized",
            "summary_id": str(summary.id),
            "messages_summarized": len(to_summarize),
            "tokens_saved": tokens_saved,
            "active_tokens": active_tokens,
        }

    def build_ai_context(self, conversation_id: UUID) -> str:
        """Summaries first, then the unsummarized messages"""
        parts = []
        summaries = self._summaries(conversation_id)

        if summaries:
            parts.append("=== CONVERSATION SUMMARY ===")
            parts.append("Previous conversation highlights:\n")
            for index, summary in enumerate(summaries, start=1):
                parts.append(f"{index}. {summary.message_range}:\n{summary.summary}\n")
            parts.append("=== RECENT CONVERSATION ===")

        for message in self._messages(conversation_id):
            if is_summarized(message):
                continue
            speaker = "User" if message.role == "user" else "AI Assistant"
            parts.append(f"{speaker}: {message.content}\n")

        return "\n".join(parts).strip()

    def get_context_stats(self, conversation_id: UUID, tier) -> Dict[str, Any]:
        messages = self._messages(conversation_id)
        active = [m for m in messages if not is_summarized(m)]
        summaries = self._summaries(conversation_id)
        active_tokens = count_messages_tokens(active)
        max_tokens = get_context_limits(tier)["max_active_tokens"]

        return {
            "total_messages": len(messages),
            "active_messages": len(active),
            "active_tokens": active_tokens,
            "max_active_tokens": max_tokens,
            "summaries_count": len(summaries),
            "tokens_saved": sum(max(s.original_token_count - s.summary_token_count, 0) for s in summaries),
            "usage_percentage": round(get_token_usage_percentage(active_tokens, max_tokens), 1),
            "needs_summarization": should_summarize(active, tier),
        }
