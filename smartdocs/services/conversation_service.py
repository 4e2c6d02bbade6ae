"""
Conversation Service - Guided requirement-gathering chats

Two modes:
- standard: a business analyst collects requirements for a single BRD
- advanced: a business consultant walks through seven planning steps
  before a full document suite is generated

Readiness is decided by keyword matching on the assistant reply plus the
length of the conversation.
"""

import logging
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from smartdocs.core.exceptions import http_404_not_found
from smartdocs.models.conversation import Conversation
from smartdocs.models.message import Message
from smartdocs.models.project import Project
from smartdocs.models.user import User
from smartdocs.prompts import PromptBuilder
from smartdocs.services.llm_service import LLMService, is_arabic
from smartdocs.services.summarization_service import SummarizationService
from smartdocs.utils.time import utcnow
from smartdocs.utils.tokens import estimate_text_tokens

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_READY = "ready_for_generation"
STATUS_DOCUMENT_GENERATED = "document_generated"

READY_KEYWORDS = ("ready to generate", "i have all the information", "enough information")
READY_KEYWORDS_AR = ("مستعد لإنشاء", "لدي كل المعلومات", "معلومات كافية")

ADVANCED_READY_KEYWORDS = ("ready to generate", "complete document suite", "comprehensive planning")
ADVANCED_READY_KEYWORDS_AR = ("مستعد لإنشاء", "مجموعة المستندات", "التخطيط الشامل")

PLANNING_STEPS = [
    "Understanding Business Concept",
    "Market Analysis",
    "Strategic Planning",
    "Financial Planning",
    "Marketing Strategy",
    "Risk Assessment",
    "Final Review",
]

SUITE_DOCUMENT_TYPES = ["BRD", "PRD", "Business Plan", "Feasibility Study", "Investor Pitch"]

FALLBACK_MESSAGE = "I'm having trouble connecting right now. Can you please try again?"
ADVANCED_FALLBACK_MESSAGE = (
    "I'm having trouble connecting to the advanced planning system right now. Can you please try again?"
)


def _contains_any(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def indicates_ready(reply: str) -> bool:
    return _contains_any(reply.lower(), READY_KEYWORDS) or _contains_any(reply, READY_KEYWORDS_AR)


def indicates_suite_ready(reply: str) -> bool:
    return _contains_any(reply.lower(), ADVANCED_READY_KEYWORDS) or _contains_any(reply, ADVANCED_READY_KEYWORDS_AR)


def can_generate_standard(conversation_length: int, ready: bool) -> bool:
    return (conversation_length >= 4 and ready) or conversation_length >= 8


def can_generate_advanced(conversation_length: int, ready: bool) -> bool:
    return (conversation_length >= 6 and ready) or conversation_length >= 12


def planning_step_index(conversation_length: int) -> int:
    return min(conversation_length // 3, len(PLANNING_STEPS) - 1)


def planning_confidence(conversation_length: int) -> int:
    return min(70 + conversation_length * 3, 95)


def build_planning_session(
    planning_session_id: Optional[str],
    user_message: str,
    country: str,
    conversation_length: int,
) -> Dict[str, Any]:
    step_index = planning_step_index(conversation_length)
    business_idea = user_message[:50] + "..." if len(user_message) > 50 else user_message
    return {
        "id": planning_session_id or f"planning_{int(time.time() * 1000)}",
        "business_idea": business_idea,
        "country": country,
        "industry": "Technology",
        "current_step": PLANNING_STEPS[step_index],
        "completed_steps": PLANNING_STEPS[:step_index],
        "required_documents": list(SUITE_DOCUMENT_TYPES),
        "collected_data": {"message_count": conversation_length},
        "research_findings": [],
        "status": "active",
    }


class ConversationService:
    """
    Conversation persistence and assistant replies

    Usage:
        service = ConversationService(db)
        result = await service.chat(user, "I want to build a delivery app", None, [])
    """

    def __init__(
        self,
        db: Session,
        llm: Optional[LLMService] = None,
        prompts: Optional[PromptBuilder] = None,
        summarizer: Optional[SummarizationService] = None,
    ):
        self.db = db
        self.llm = llm or LLMService()
        self.prompts = prompts or PromptBuilder()
        self.summarizer = summarizer or SummarizationService(db, self.llm, self.prompts)

    def get_owned(self, user: User, conversation_id: UUID) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.user_id == user.id)
            .first()
        )

    def get_or_create(
        self,
        user: User,
        conversation_id: Optional[UUID],
        project_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        title: Optional[str] = None,
    ) -> Conversation:
        """
        Find the user's conversation or start a new one

        Raises:
            HTTPException 404 if project_id is given but not owned by the user
        """
        conversation = self.get_owned(user, conversation_id) if conversation_id else None

        if project_id is not None:
            project = (
                self.db.query(Project)
                .filter(Project.id == project_id, Project.user_id == user.id)
                .first()
            )
            if not project:
                raise http_404_not_found("Project not found")

        if conversation is None:
            conversation = Conversation(
                user_id=user.id,
                project_id=project_id,
                title=(title or "")[:255] or None,
                status=STATUS_ACTIVE,
                metadata_=metadata or {},
            )
            self.db.add(conversation)
            self.db.flush()
        elif project_id is not None and conversation.project_id is None:
            conversation.project_id = project_id

        return conversation

    def add_message(self, conversation: Conversation, role: str, content: str, metadata: Optional[Dict] = None) -> Message:
        message = Message(
            conversation_id=conversation.id,
            role=role,
            content=content,
            metadata_={"token_count": estimate_text_tokens(content), **(metadata or {})},
        )
        self.db.add(message)
        self.db.flush()
        return message

    async def chat(
        self,
        user: User,
        message: str,
        conversation_id: Optional[UUID],
        history: List[Any],
        project_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """
        Standard requirement-gathering turn

        Returns:
            {"message", "conversation_id", "can_generate_document"}
        """
        conversation = self.get_or_create(user, conversation_id, project_id, title=message)
        self.add_message(conversation, "user", message)

        conversation_length = len(history) + 1
        language = "ar" if is_arabic(message) else "en"

        try:
            result = await self.llm.generate(self.prompts.conversation_prompt(history, message, language))
            reply = result.content
            can_generate = can_generate_standard(conversation_length, indicates_ready(reply))
        except Exception as e:
            logger.error(f"Conversation reply failed for {conversation.id}: {e}")
            reply = FALLBACK_MESSAGE
            can_generate = False

        self.add_message(conversation, "assistant", reply)

        conversation.status = STATUS_READY if can_generate else STATUS_ACTIVE
        conversation.metadata_ = {
            **(conversation.metadata_ or {}),
            "last_activity": utcnow().isoformat(),
            "message_count": len(history) + 2,
        }
        self.db.commit()

        if conversation.project_id:
            await self._manage_context(user, conversation)

        return {
            "message": reply,
            "conversation_id": conversation.id,
            "can_generate_document": can_generate,
        }

    async def _manage_context(self, user: User, conversation: Conversation) -> None:
        try:
            await self.summarizer.manage_conversation_context(conversation.id, user.subscription_tier)
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Context management failed for conversation {conversation.id}: {e}")

    async def advanced_chat(
        self,
        user: User,
        message: str,
        conversation_id: Optional[UUID],
        history: List[Any],
        country: str,
        planning_session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Advanced planning turn

        Returns:
            {"message", "conversation_id", "can_generate_document",
             "planning_session", "document_types", "country_context",
             "research_findings", "planning_step", "confidence"}
        """
        conversation = self.get_or_create(
            user,
            conversation_id,
            metadata={"mode": "advanced", "country": country, "planning_session_id": planning_session_id},
            title=message,
        )
        self.add_message(conversation, "user", message)

        conversation_length = len(history) + 1
        language = "ar" if is_arabic(message) else "en"
        step = PLANNING_STEPS[planning_step_index(conversation_length)]

        try:
            result = await self.llm.generate(
                self.prompts.advanced_conversation_prompt(history, message, language, country, step)
            )
            reply = result.content
            can_generate = can_generate_advanced(conversation_length, indicates_suite_ready(reply))
            planning_session = build_planning_session(planning_session_id, message, country, conversation_length)
            metadata = {
                "document_types": list(SUITE_DOCUMENT_TYPES),
                "country_context": country,
                "research_findings": [],
                "planning_step": step,
                "confidence": planning_confidence(conversation_length),
            }
        except Exception as e:
            logger.error(f"Advanced conversation reply failed for {conversation.id}: {e}")
            reply = ADVANCED_FALLBACK_MESSAGE
            can_generate = False
            planning_session = None
            metadata = {
                "document_types": [],
                "country_context": country,
                "research_findings": [],
                "planning_step": "Error Recovery",
                "confidence": 0,
            }

        self.add_message(conversation, "assistant", reply, metadata)

        conversation.status = STATUS_READY if can_generate else STATUS_ACTIVE
        conversation.metadata_ = {
            **(conversation.metadata_ or {}),
            "last_activity": utcnow().isoformat(),
            "message_count": len(history) + 2,
            "planning_session": planning_session,
        }
        self.db.commit()

        return {
            "message": reply,
            "conversation_id": conversation.id,
            "can_generate_document": can_generate,
            "planning_session": planning_session,
            **metadata,
        }

    def list_conversations(self, user: User) -> List[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.user_id == user.id)
            .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
            .all()
        )

    def delete_conversation(self, user: User, conversation_id: UUID) -> None:
        conversation = self.get_owned(user, conversation_id)
        if not conversation:
            raise http_404_not_found("Conversation not found")
        self.db.delete(conversation)
        self.db.commit()
        logger.info(f"Deleted conversation {conversation_id} for user {user.id}")
