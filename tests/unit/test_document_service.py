"""
Unit tests for the document service

Tests:
- Title extraction, idea titles and the fallback BRD
- Analysis parsing and the offline heuristic
- Generation from a conversation, including the provider failure fallback
- Suite generation skipping failed documents
- Generation from an idea asking follow-up questions
"""

import json
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from smartdocs.core.exceptions import AIProviderError
from smartdocs.models.conversation import Conversation
from smartdocs.models.document import Document
from smartdocs.models.message import Message
from smartdocs.prompts import PromptBuilder
from smartdocs.services.document_service import (
    DocumentService,
    build_fallback_document,
    detect_conversation_language,
    extract_title,
    heuristic_analysis,
    parse_analysis,
    should_proceed,
    title_from_idea,
)
from smartdocs.services.llm_service import LLMResult


def _result(content, model="gpt-4o-mini", tokens=120):
    return LLMResult(content=content, model=model, provider="openai", tokens_used=tokens, generation_time_ms=3)


def _msg(role, content):
    return SimpleNamespace(role=role, content=content)


@pytest.mark.unit
class TestDocumentHelpers:

    def test_extract_title(self):
        assert extract_title("# Food Delivery - Business Requirements Document\n\nBody") == "Food Delivery"
        assert extract_title("# Inventory Tracker\n") == "Inventory Tracker"
        assert extract_title("No heading here") == "Business Requirements Document"

    def test_title_from_idea(self):
        assert title_from_idea("A marketplace for tutors. Students book lessons.") == "A marketplace for tutors"
        assert len(title_from_idea("x" * 80)) == 50
        assert title_from_idea(".") == "Generated Project Documentation"

    def test_detect_language(self):
        assert detect_conversation_language([]) == "en"
        arabic = [_msg("user", "مرحبا"), _msg("assistant", "hello"), _msg("user", "أريد تطبيق")]
        assert detect_conversation_language(arabic) == "ar"
        assert detect_conversation_language([_msg("user", "hi")] * 3 + [_msg("user", "مرحبا")] * 2) == "ar"
        assert detect_conversation_language([_msg("user", "hi")] * 9 + [_msg("user", "مرحبا")]) == "en"

    def test_fallback_document_lists_user_points(self):
        content = build_fallback_document([_msg("user", "Build a CRM"), _msg("assistant", "ok"), _msg("user", "  ")])
        assert content.startswith("# Project Requirements Document")
        assert "- Build a CRM" in content
        assert "- ok" not in content

    def test_parse_analysis_accepts_fences_and_camel_case(self):
        content = "```json\n" + json.dumps({"hasEnoughInfo": True, "confidence": 80, "questions": []}) + "\n```"
        assert parse_analysis(content) == {
            "has_enough_info": True,
            "confidence": 80,
            "extracted_info": {},
            "questions": [],
        }

    def test_parse_analysis_rejects_non_objects(self):
        with pytest.raises(ValueError):
            parse_analysis("[1, 2]")
        with pytest.raises(ValueError):
            parse_analysis("not json")

    def test_heuristic_analysis(self):
        thin = heuristic_analysis("an app", [], "ar")
        assert thin["has_enough_info"] is False
        assert thin["questions"][0] == "ما هو نوع المشروع بالضبط؟"

        with_files = heuristic_analysis("an app", ["File: spec.txt\nContent:\n..."])
        assert with_files["has_enough_info"] is True
        assert with_files["confidence"] == 85

        detailed = "We are building a software platform where every customer can track a delivery " \
                   "and each user sees features like live maps, ratings, and receipts for orders"
        assert heuristic_analysis(detailed, [])["confidence"] == 70

    def test_should_proceed(self):
        thin = {"has_enough_info": False, "confidence": 10}
        assert not should_proceed(thin, "short", {})
        assert should_proceed(thin, "x" * 501, {})
        assert should_proceed(thin, "short", {"audience": "students"})
        assert should_proceed({"has_enough_info": False, "confidence": 25}, "short", {})


@pytest.mark.unit
class TestDocumentService:

    @pytest.fixture
    def service(self, db_session, fake_llm):
        return DocumentService(db_session, llm=fake_llm, prompts=PromptBuilder())

    @pytest.fixture
    def conversation(self, db_session, test_user):
        conversation = Conversation(user_id=test_user.id, title="CRM", status="ready_for_generation")
        db_session.add(conversation)
        db_session.flush()
        db_session.add_all([
            Message(conversation_id=conversation.id, role="user", content="I need a CRM for dentists"),
            Message(conversation_id=conversation.id, role="assistant", content="Who will use it?"),
        ])
        db_session.commit()
        return conversation

    @pytest.mark.asyncio
    async def test_generate_from_conversation(self, service, fake_llm, db_session, test_user, conversation):
        content = "# Dental CRM - Business Requirements Document\n\n" + "x" * 400
        fake_llm.generate.return_value = _result(content)

        result = await service.generate_from_conversation(test_user, conversation.id)

        document = db_session.get(Document, result["document_id"])
        assert document.title == "Dental CRM"
        assert document.type == "BRD"
        assert result["tokens_used"] == len(content) // 4 + (1 if len(content) % 4 else 0)

        db_session.refresh(test_user)
        db_session.refresh(conversation)
        assert test_user.tokens_used == result["tokens_used"]
        assert conversation.status == "document_generated"
        assert conversation.metadata_["document_id"] == str(document.id)

    @pytest.mark.asyncio
    async def test_generate_from_conversation_fallback(self, service, fake_llm, db_session, test_user, conversation):
        fake_llm.generate = AsyncMock(side_effect=AIProviderError("All AI providers failed"))

        result = await service.generate_from_conversation(test_user, conversation.id)

        document = db_session.get(Document, result["document_id"])
        assert document.ai_model == "fallback"
        assert "- I need a CRM for dentists" in document.content
        assert result["tokens_used"] == 0

    @pytest.mark.asyncio
    async def test_generate_suite_skips_failures(self, service, fake_llm, db_session, test_user, conversation):
        test_user.tokens_limit = 100000
        db_session.commit()
        fake_llm.generate = AsyncMock(side_effect=[
            _result("a" * 400),
            AIProviderError("down"),
            _result("b" * 400),
            _result("c" * 400),
            _result("d" * 400),
        ])

        result = await service.generate_suite(test_user, conversation.id, "planning_1", "SA")

        assert result["document_count"] == 4
        assert result["total_tokens_used"] == 400
        assert [d["type"] for d in result["documents"]] == ["BRD", "Business Plan", "Feasibility Study", "Investor Pitch"]
        stored = db_session.query(Document).filter(Document.user_id == test_user.id).all()
        assert all(d.metadata_["suite_id"] == result["document_suite_id"] for d in stored)

    @pytest.mark.asyncio
    async def test_generate_suite_requires_15000_tokens(self, service, db_session, test_user, conversation):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc_info:
            await service.generate_suite(test_user, conversation.id, None, "US")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_generate_from_idea_asks_questions(self, service, fake_llm, test_user):
        fake_llm.generate.return_value = _result(json.dumps({
            "has_enough_info": False,
            "confidence": 10,
            "questions": ["Who is the audience?"],
        }))

        result = await service.generate_from_idea(test_user, "an app")

        assert result == {"needs_more_info": True, "questions": ["Who is the audience?"], "confidence": 10}
        assert fake_llm.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_generate_from_idea_creates_document(self, service, fake_llm, db_session, test_user):
        fake_llm.generate = AsyncMock(side_effect=[
            _result(json.dumps({"has_enough_info": True, "confidence": 90})),
            _result("# PRD\n\nContent", tokens=250),
        ])

        result = await service.generate_from_idea(test_user, "A tutoring marketplace. Many details.", document_type="PRD")

        assert result["success"] is True
        assert result["title"] == "A tutoring marketplace"
        assert result["tokens_used"] == 250
        db_session.refresh(test_user)
        assert test_user.tokens_used == 250
