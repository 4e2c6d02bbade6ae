"""
SQLAlchemy Database Models

All models use UUID as primary key.
Timestamps are timezone aware; rows whose ordering matters (messages,
sessions, documents) get their timestamps in Python so several inserts in
one flush keep a stable order.

Relationships:
    User 1:N APIKey, Project, Conversation, Document, Payment
    Project 1:N Conversation, ProjectSession, ConversationSummary
    Project 1:N Document (documents survive project deletion)
    Conversation 1:N Message, ConversationSummary

Cascade Deletes:
    - Delete User -> Delete keys, projects, conversations, documents, payments
    - Delete Project -> Delete sessions, conversations, summaries
    - Delete Conversation -> Delete messages and summaries
"""

from smartdocs.models.user import User
from smartdocs.models.api_key import APIKey
from smartdocs.models.email_token import EmailToken
from smartdocs.models.referral_reward import ReferralReward
from smartdocs.models.project import Project
from smartdocs.models.conversation import Conversation
from smartdocs.models.message import Message
from smartdocs.models.project_session import ProjectSession
from smartdocs.models.conversation_summary import ConversationSummary
from smartdocs.models.document import Document
from smartdocs.models.usage_history import UsageHistory
from smartdocs.models.subscription import Subscription
from smartdocs.models.payment import Payment
from smartdocs.models.admin_activity import AdminActivity
from smartdocs.models.feedback import Feedback
from smartdocs.models.contact_request import ContactRequest
from smartdocs.models.system_setting import SystemSetting

__all__ = [
    "User",
    "APIKey",
    "EmailToken",
    "ReferralReward",
    "Project",
    "Conversation",
    "Message",
    "ProjectSession",
    "ConversationSummary",
    "Document",
    "UsageHistory",
    "Subscription",
    "Payment",
    "AdminActivity",
    "Feedback",
    "ContactRequest",
    "SystemSetting",
]
