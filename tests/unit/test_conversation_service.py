"""
Unit tests for the conversation service

Tests:
- Readiness keywords and generation thresholds
- Planning session construction
- chat() persistence and provider failure fallback
"""

import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from fastapi import HTTPException

from smartdocs.models.message import Message
from smartdocs.prompts import PromptBuilder
from smartdocs.services.conversation_service import (
    FALLBACK_MESSAGE,
    PLANNING_STEPS,
    ConversationService,
    build_planning_session,
    can_generate_advanced,
    can_generate_standard,
    indicates_ready,
    indicates_suite_ready,
    planning_confidence,
)
from smartdocs.services.llm_service import LLMResult


@pytest.mark.unit
class TestConversationRules:

    def test_ready_keywords(self):
        assert indicates_ready("Great, I am READY TO GENERATE your document")
        assert indicates_ready("أنا مستعد لإنشاء المستند")
        assert not indicates_ready("Tell me about your users")

    def test_suite_keywords(self):
        assert indicates_suite_ready("Let's build your complete document suite")
        assert not indicates_suite_ready("What is your budget?")

    def test_standard_thresholds(self):
        assert not can_generate_standard(3, True)
        assert can_generate_standard(4, True)
        assert not can_generate_standard(7, False)
        assert can_generate_standard(8, False)

    def test_advanced_thresholds(self):
        assert not can_generate_advanced(5, True)
        assert can_generate_advanced(6, True)
        assert can_generate_advanced(12, False)

    def test_confidence_caps_at_95(self):
        assert planning_confidence(1) == 73
        assert planning_confidence(50) == 95

    def test_planning_session(self):
        session = build_planning_session(None, "x" * 80, "SA", 7)

        assert session["id"].startswith("planning_")
        assert session["business_idea"] == "x" * 50 + "..."
        assert session["current_step"] == PLANNING_STEPS[2]
        assert session["completed_steps"] == PLANNING_STEPS[:2]
        assert "Investor Pitch" in session["required_documents"]

    def test_planning_session_keeps_id(self):
        assert build_planning_session("planning_1", "idea", "US", 0)["id"] == "planning_1"


@pytest.mark.unit
class TestConversationService:

    @pytest.fixture
    def service(self, db_session, fake_llm):
        return ConversationService(db_session, llm=fake_llm, prompts=PromptBuilder())

    @pytest.mark.asyncio
    async def test_chat_creates_conversation_and_messages(self, service, db_session, test_user):
        result = await service.chat(test_user, "I want a delivery app", None, [])

        assert result["message"] == "Thanks! Tell me more about your users."
        assert result["can_generate_document"] is False

        messages = db_session.query(Message).filter(Message.conversation_id == result["conversation_id"]).all()
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[0].metadata_["token_count"] == 6

    @pytest.mark.asyncio
    async def test_chat_ready_after_enough_turns(self, service, fake_llm, test_user):
        fake_llm.generate.return_value = LLMResult(
            content="I have all the information I need.",
            model="gpt-4o-mini",
            provider="openai",
            tokens_used=10,
            generation_time_ms=1,
        )
        history = [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}] * 2

        result = await service.chat(test_user, "That's everything", None, history)

        assert result["can_generate_document"] is True
        conversation = service.get_owned(test_user, result["conversation_id"])
        assert conversation.status == "ready_for_generation"

    @pytest.mark.asyncio
    async def test_chat_falls_back_when_provider_fails(self, service, fake_llm, test_user):
        fake_llm.generate = AsyncMock(side_effect=RuntimeError("boom"))

        result = await service.chat(test_user, "Hello", None, [])

        assert result["message"] == FALLBACK_MESSAGE
        assert result["can_generate_document"] is False

    @pytest.mark.asyncio
    async def test_chat_rejects_foreign_project(self, service, test_user):
        with pytest.raises(HTTPException) as exc_info:
            await service.chat(test_user, "Hello", None, [], project_id=uuid4())
        assert exc_info.value.status_code == 404

    def test_delete_conversation(self, service, db_session, test_user):
        conversation = service.get_or_create(test_user, None, title="Temp")
        db_session.commit()

        service.delete_conversation(test_user, conversation.id)

        assert service.get_owned(test_user, conversation.id) is None
