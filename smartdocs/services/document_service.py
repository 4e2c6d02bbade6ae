"""
Document Generation Service

Produces business documents three ways:
- from a finished requirement-gathering conversation (single BRD)
- from an advanced planning conversation (five-document suite)
- from a free-text project idea, optionally with uploaded files and
  answers to clarifying questions
"""

import json
import logging
import math
import re
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from smartdocs.config import settings
from smartdocs.core.exceptions import AIProviderError, http_404_not_found
from smartdocs.models.conversation import Conversation
from smartdocs.models.document import Document
from smartdocs.models.message import Message
from smartdocs.models.project import Project
from smartdocs.models.user import User
from smartdocs.prompts import PromptBuilder
from smartdocs.services.conversation_service import STATUS_DOCUMENT_GENERATED
from smartdocs.services.llm_service import LLMService, is_arabic
from smartdocs.services.quota_service import QuotaService
from smartdocs.utils.time import utcnow

logger = logging.getLogger(__name__)

SINGLE_DOCUMENT_TOKEN_ESTIMATE = 3000
SUITE_TOKEN_ESTIMATE = 15000
ARABIC_CONVERSATION_RATIO = 0.3

DEFAULT_TITLE = "Business Requirements Document"
FALLBACK_TITLE = "Project Requirements Document"
FALLBACK_MODEL = "fallback"
IDEA_DEFAULT_TITLE = "Generated Project Documentation"

TITLE_PATTERN = re.compile(r"^#\s*(.+?)(?:\s*-\s*Business Requirements Document)?\s*$", re.MULTILINE)

# (type, English title, Arabic title) for the advanced mode suite
SUITE_DOCUMENTS = [
    ("BRD", "Business Requirements Document", "وثيقة متطلبات الأعمال"),
    ("PRD", "Product Requirements Document", "وثيقة متطلبات المنتج"),
    ("Business Plan", "Business Plan", "خطة الأعمال"),
    ("Feasibility Study", "Feasibility Study", "دراسة الجدوى"),
    ("Investor Pitch", "Investor Pitch Deck", "عرض المستثمرين"),
]

DOCUMENT_TITLES = {doc_type: (en, ar) for doc_type, en, ar in SUITE_DOCUMENTS}

PRODUCT_KEYWORDS = re.compile(r"\b(app|website|platform|system|software|service|business|product)\b", re.IGNORECASE)
DETAIL_KEYWORDS = re.compile(r"\b(user|customer|feature|function|requirement|goal)\b", re.IGNORECASE)

DEFAULT_QUESTIONS = {
    "en": [
        "What exactly is the type of project?",
        "Who is the target audience?",
        "What are the core features required?",
        "What are the main business objectives?",
        "What industry or sector is this for?",
    ],
    "ar": [
        "ما هو نوع المشروع بالضبط؟",
        "من هو الجمهور المستهدف؟",
        "ما هي الميزات الأساسية المطلوبة؟",
        "ما هي أهداف العمل الرئيسية؟",
        "ما هي الصناعة أو القطاع؟",
    ],
}

MIN_PROCEED_CONFIDENCE = 25
LONG_IDEA_LENGTH = 500


def estimate_document_tokens(content: str) -> int:
    return math.ceil(len(content) / 4)


def detect_conversation_language(messages: List[Any]) -> str:
    """Arabic when more than 30% of the messages contain Arabic script"""
    if not messages:
        return "en"
    arabic = sum(1 for message in messages if is_arabic(message.content))
    return "ar" if arabic > len(messages) * ARABIC_CONVERSATION_RATIO else "en"


def extract_title(content: str, default: str = DEFAULT_TITLE) -> str:
    match = TITLE_PATTERN.search(content or "")
    return match.group(1).strip() if match else default


def title_from_idea(project_idea: str) -> str:
    first_sentence = re.split(r"[.\n]", project_idea, maxsplit=1)[0]
    return first_sentence[:50].strip() or IDEA_DEFAULT_TITLE


def build_fallback_document(messages: List[Any]) -> str:
    """Skeleton BRD assembled from what the user said"""
    points = [m.content.strip()[:200] for m in messages if m.role == "user" and m.content.strip()]
    lines = [
        f"# {FALLBACK_TITLE}",
        "",
        "## Executive Summary",
        "This document outlines the requirements for the project discussed in our conversation.",
        "",
        "## Project Overview",
        "Based on our discussion, this project involves creating a solution that addresses the specified business needs.",
    ]
    if points:
        lines += ["", "### Key Points Discussed"]
        lines += [f"- {point}" for point in points[:10]]
    lines += [
        "",
        "## Next Steps",
        "Please review this document and provide additional details to complete the requirements analysis.",
        "",
        "---",
        "*This document was generated automatically and requires review and completion.*",
    ]
    return "\n".join(lines)


def heuristic_analysis(project_idea: str, uploaded_files: List[str], language: str = "en") -> Dict[str, Any]:
    """Offline sufficiency check used when the analysis call fails"""
    word_count = len(project_idea.split())
    has_files = bool(uploaded_files)
    has_keywords = bool(PRODUCT_KEYWORDS.search(project_idea))
    has_details = bool(DETAIL_KEYWORDS.search(project_idea))

    if (word_count >= 20 and has_keywords and has_details) or has_files:
        return {
            "has_enough_info": True,
            "confidence": 85 if has_files else 70,
            "extracted_info": {"project_type": "software", "industry": "technology"},
            "questions": [],
        }

    return {
        "has_enough_info": False,
        "confidence": 30,
        "extracted_info": {},
        "questions": list(DEFAULT_QUESTIONS.get(language, DEFAULT_QUESTIONS["en"])),
    }


def parse_analysis(content: str) -> Dict[str, Any]:
    """
    Parse the model's JSON answer

    Accepts fenced code blocks and camelCase keys.

    Raises:
        ValueError: if the content is not a JSON object
    """
    text = content.strip()
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\s*|\s*```$", "", text)
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Analysis is not a JSON object")

    return {
        "has_enough_info": bool(data.get("has_enough_info", data.get("hasEnoughInfo", False))),
        "confidence": int(data.get("confidence", 0) or 0),
        "extracted_info": data.get("extracted_info", data.get("extractedInfo")) or {},
        "questions": data.get("questions") or [],
    }


def should_proceed(analysis: Dict[str, Any], project_idea: str, additional_info: Dict[str, Any]) -> bool:
    return (
        analysis.get("has_enough_info", False)
        or len(project_idea) > LONG_IDEA_LENGTH
        or bool(additional_info)
        or analysis.get("confidence", 0) >= MIN_PROCEED_CONFIDENCE
    )


class DocumentService:
    """
    Generate and persist documents, charging the user's token quota

    Usage:
        service = DocumentService(db)
        result = await service.generate_from_conversation(user, conversation_id)
    """

    def __init__(self, db: Session, llm: Optional[LLMService] = None, prompts: Optional[PromptBuilder] = None):
        self.db = db
        self.llm = llm or LLMService()
        self.prompts = prompts or PromptBuilder()
        self.quota = QuotaService(db)

    def _get_conversation(self, user: User, conversation_id: UUID) -> Conversation:
        conversation = (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.user_id == user.id)
            .first()
        )
        if not conversation:
            raise http_404_not_found("Conversation not found")
        return conversation

    def _conversation_messages(self, conversation: Conversation) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.asc())
            .all()
        )

    async def generate_from_conversation(self, user: User, conversation_id: UUID) -> Dict[str, Any]:
        """
        Generate a BRD from a standard conversation

        Raises:
            HTTPException 404: conversation missing or not owned by the user
            HTTPException 429: not enough tokens for the estimate
        """
        conversation = self._get_conversation(user, conversation_id)
        self.quota.check_tokens(user, SINGLE_DOCUMENT_TOKEN_ESTIMATE)

        messages = self._conversation_messages(conversation)
        language = detect_conversation_language(messages)
        transcript = "\n\n".join(
            f"{'User' if m.role == 'user' else 'AI'}: {m.content}" for m in messages
        )
        prompt = f"Please create a professional BRD based on this conversation:\n\n{transcript}"

        start = time.time()
        try:
            result = await self.llm.generate(
                prompt,
                system_prompt=self.prompts.brd_system_prompt(language),
                max_tokens=settings.DOCUMENT_MAX_TOKENS,
            )
            content = result.content
            title = extract_title(content)
            model = result.model
            tokens_used = estimate_document_tokens(content)
        except AIProviderError as e:
            logger.error(f"Document generation failed for conversation {conversation.id}, using fallback: {e}")
            content = build_fallback_document(messages)
            title = FALLBACK_TITLE
            model = FALLBACK_MODEL
            tokens_used = 0
        generation_time = int((time.time() - start) * 1000)

        document = Document(
            user_id=user.id,
            project_id=conversation.project_id,
            title=title[:512],
            content=content,
            type="BRD",
            status="generated",
            tokens_used=tokens_used,
            ai_model=model,
            generation_time=generation_time,
            metadata_={"conversation_id": str(conversation.id), "model": model, "language": language},
        )
        self.db.add(document)
        self.db.flush()

        self.quota.increment_usage(user, tokens_used, commit=False)
        self.quota.record_usage(
            user,
            "document_generation",
            tokens_used,
            success=model != FALLBACK_MODEL,
            metadata={"document_type": "BRD", "conversation_id": str(conversation.id), "model": model},
            commit=False,
        )

        conversation.status = STATUS_DOCUMENT_GENERATED
        conversation.metadata_ = {
            **(conversation.metadata_ or {}),
            "document_id": str(document.id),
            "completed_at": utcnow().isoformat(),
        }
        self.db.commit()

        logger.info(f"Generated BRD {document.id} for user {user.id} ({tokens_used} tokens)")
        return {
            "document_id": document.id,
            "document_type": document.type,
            "tokens_used": tokens_used,
            "generation_time": generation_time,
        }

    async def generate_suite(
        self,
        user: User,
        conversation_id: UUID,
        planning_session_id: Optional[str],
        country: str,
    ) -> Dict[str, Any]:
        """
        Generate the five-document suite for an advanced conversation

        A document whose generation fails is skipped; the rest continue.
        """
        conversation = self._get_conversation(user, conversation_id)
        self.quota.check_tokens(
            user,
            SUITE_TOKEN_ESTIMATE,
            message="Insufficient tokens for document suite generation",
        )

        messages = self._conversation_messages(conversation)
        business_context = " ".join(m.content for m in messages if m.role == "user")
        description = business_context[:500]
        language = "ar" if is_arabic(description) else "en"
        suite_id = f"suite_{int(time.time() * 1000)}"

        saved: List[Document] = []
        total_tokens = 0

        for doc_type, title_en, title_ar in SUITE_DOCUMENTS:
            type_title = title_ar if language == "ar" else title_en
            start = time.time()
            try:
                result = await self.llm.generate(
                    self.prompts.suite_document_prompt(type_title, description, country, language),
                    max_tokens=settings.DOCUMENT_MAX_TOKENS,
                )
            except AIProviderError as e:
                logger.error(f"Error generating {doc_type} for suite {suite_id}: {e}")
                continue

            tokens_used = len(result.content) // 4
            document = Document(
                user_id=user.id,
                project_id=conversation.project_id,
                title=f"{type_title} - {description[:50]}..."[:512],
                content=result.content,
                type=doc_type,
                status="generated",
                tokens_used=tokens_used,
                ai_model=result.model,
                generation_time=int((time.time() - start) * 1000),
                metadata_={
                    "conversation_id": str(conversation.id),
                    "planning_session_id": planning_session_id,
                    "country": country,
                    "part_of_suite": True,
                    "suite_id": suite_id,
                },
            )
            self.db.add(document)
            saved.append(document)
            total_tokens += tokens_used

        self.db.flush()
        self.quota.increment_usage(user, total_tokens, commit=False)
        self.quota.record_usage(
            user,
            "document_suite_generation",
            total_tokens,
            success=bool(saved),
            metadata={"suite_id": suite_id, "document_count": len(saved)},
            commit=False,
        )

        conversation.status = STATUS_DOCUMENT_GENERATED
        conversation.metadata_ = {
            **(conversation.metadata_ or {}),
            "document_suite_generated": True,
            "document_suite_id": suite_id,
            "total_tokens_used": total_tokens,
        }
        self.db.commit()

        logger.info(f"Generated suite {suite_id} with {len(saved)} documents for user {user.id}")
        return {
            "success": True,
            "document_suite_id": suite_id,
            "document_count": len(saved),
            "total_tokens_used": total_tokens,
            "documents": [{"id": d.id, "title": d.title, "type": d.type} for d in saved],
            "message": f"Successfully generated {len(saved)} professional documents",
        }

    async def analyze_project_idea(
        self,
        project_idea: str,
        uploaded_files: Optional[List[str]] = None,
        provider: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Decide whether the idea carries enough detail to write a document

        Returns:
            {"has_enough_info", "confidence", "extracted_info", "questions"}
        """
        uploaded_files = uploaded_files or []
        language = "ar" if is_arabic(project_idea) else "en"

        try:
            result = await self.llm.generate(
                self.prompts.analysis_prompt(project_idea, uploaded_files, language),
                system_prompt=self.prompts.analysis_system_prompt(language),
                max_tokens=1000,
                temperature=0.3,
                provider=provider,
            )
            return parse_analysis(result.content)
        except (AIProviderError, ValueError, TypeError) as e:
            logger.warning(f"Project analysis failed, using heuristic: {e}")
            return heuristic_analysis(project_idea, uploaded_files, language)

    def _check_project(self, user: User, project_id: Optional[UUID]) -> None:
        if project_id is None:
            return
        project = self.db.query(Project).filter(Project.id == project_id, Project.user_id == user.id).first()
        if not project:
            raise http_404_not_found("Project not found")

    async def _generate_from_idea(
        self,
        user: User,
        project_idea: str,
        document_type: str,
        uploaded_files: List[str],
        additional_info: Dict[str, Any],
        project_id: Optional[UUID],
        provider: Optional[str],
    ) -> Dict[str, Any]:
        language = "ar" if is_arabic(project_idea) else "en"
        titles = DOCUMENT_TITLES.get(document_type, (document_type, document_type))
        type_title = titles[1] if language == "ar" else titles[0]

        try:
            result = await self.llm.generate(
                self.prompts.project_document_prompt(project_idea, uploaded_files, additional_info, language),
                system_prompt=self.prompts.project_document_system_prompt(type_title, language),
                max_tokens=settings.DOCUMENT_MAX_TOKENS,
                provider=provider,
            )
        except AIProviderError:
            self.quota.record_usage(
                user,
                "document_generation",
                0,
                success=False,
                metadata={"document_type": document_type},
            )
            raise

        document = Document(
            user_id=user.id,
            project_id=project_id,
            title=title_from_idea(project_idea),
            content=result.content,
            type=document_type,
            status="generated",
            tokens_used=result.tokens_used,
            ai_model=result.model,
            generation_time=result.generation_time_ms,
            metadata_={"language": language, "provider": result.provider},
        )
        self.db.add(document)
        self.db.flush()

        self.quota.increment_usage(user, result.tokens_used, commit=False)
        self.quota.record_usage(
            user,
            "document_generation",
            result.tokens_used,
            success=True,
            metadata={"document_type": document_type, "model": result.model},
            commit=False,
        )
        self.db.commit()

        logger.info(f"Generated {document_type} {document.id} from project idea for user {user.id}")
        return {
            "success": True,
            "document_id": document.id,
            "document_type": document_type,
            "title": document.title,
            "content": document.content,
            "tokens_used": result.tokens_used,
            "generation_time": result.generation_time_ms,
            "model": result.model,
        }

    async def generate_from_idea(
        self,
        user: User,
        project_idea: str,
        document_type: str = "BRD",
        uploaded_files: Optional[List[str]] = None,
        additional_info: Optional[Dict[str, Any]] = None,
        project_id: Optional[UUID] = None,
        provider: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Analyze the idea, then generate a single document

        Returns:
            The generation result, or {"needs_more_info": True, "questions", "confidence"}
            when the idea is too thin.

        Raises:
            HTTPException 404: project_id not owned by the user
            HTTPException 429: not enough tokens
            AIProviderError: every LLM provider failed
        """
        uploaded_files = uploaded_files or []
        additional_info = additional_info or {}
        project_idea = project_idea.strip()
        self._check_project(user, project_id)

        analysis = await self.analyze_project_idea(project_idea, uploaded_files, provider)
        if not should_proceed(analysis, project_idea, additional_info):
            return {
                "needs_more_info": True,
                "questions": analysis.get("questions", []),
                "confidence": analysis.get("confidence", 0),
            }

        self.quota.check_tokens(user, SINGLE_DOCUMENT_TOKEN_ESTIMATE)
        return await self._generate_from_idea(
            user, project_idea, document_type, uploaded_files, additional_info, project_id, provider
        )

    async def generate_multi(
        self,
        user: User,
        project_idea: str,
        document_types: List[str],
        uploaded_files: Optional[List[str]] = None,
        additional_info: Optional[Dict[str, Any]] = None,
        project_id: Optional[UUID] = None,
        provider: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate one document per requested type, reporting each outcome"""
        uploaded_files = uploaded_files or []
        additional_info = additional_info or {}
        project_idea = project_idea.strip()
        self._check_project(user, project_id)
        self.quota.check_tokens(user, SINGLE_DOCUMENT_TOKEN_ESTIMATE * len(document_types))

        results = []
        total_tokens = 0
        for document_type in document_types:
            try:
                result = await self._generate_from_idea(
                    user, project_idea, document_type, uploaded_files, additional_info, project_id, provider
                )
            except AIProviderError as e:
                logger.error(f"Multi-document generation failed for {document_type}: {e}")
                results.append({"document_type": document_type, "success": False, "error": "Generation failed"})
                continue

            total_tokens += result["tokens_used"]
            results.append({
                "document_type": document_type,
                "success": True,
                "document_id": result["document_id"],
                "title": result["title"],
                "tokens_used": result["tokens_used"],
            })

        return {
            "success": any(r["success"] for r in results),
            "results": results,
            "total_tokens_used": total_tokens,
        }
