"""
FastAPI dependencies
Authentication, admin guards and service singletons
"""

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from functools import lru_cache
from typing import Optional

from smartdocs.database import get_db
from smartdocs.models.user import User
from smartdocs.models.api_key import APIKey
from smartdocs.core.security import hash_api_key
from smartdocs.core.exceptions import http_401_unauthorized, http_403_forbidden
from smartdocs.core.permissions import AdminPermission, has_permission, is_admin
from smartdocs.utils.time import ensure_utc, utcnow


def _authenticate(authorization: str, db: Session) -> User:
    # Validate header format
    if not authorization.startswith("Bearer "):
        raise http_401_unauthorized("Invalid authorization header format")

    api_key = authorization[7:]
    if not api_key:
        raise http_401_unauthorized("API key missing")

    api_key_obj = db.query(APIKey).filter(APIKey.key_hash == hash_api_key(api_key)).first()
    if not api_key_obj:
        raise http_401_unauthorized("Invalid API key")

    if api_key_obj.expires_at and ensure_utc(api_key_obj.expires_at) < utcnow():
        raise http_401_unauthorized("API key expired")

    api_key_obj.last_used_at = utcnow()
    db.commit()

    user = db.query(User).filter(User.id == api_key_obj.user_id).first()
    if not user:
        raise http_401_unauthorized("User not found")
    if not user.is_active:
        raise http_401_unauthorized("User account is inactive")

    return user


async def get_current_user(
    authorization: str = Header(..., description="Bearer token"),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from API key

    Args:
        authorization: Authorization header (format: "Bearer sd_...")
        db: Database session

    Returns:
        User: Authenticated user

    Raises:
        HTTPException: 401 if authentication fails
    """
    return _authenticate(authorization, db)


async def get_optional_user(
    authorization: Optional[str] = Header(None, description="Bearer token"),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Authenticated user when a valid bearer key is sent, None otherwise

    Used by endpoints that also accept anonymous callers (feedback, contact).
    """
    if not authorization:
        return None
    try:
        return _authenticate(authorization, db)
    except HTTPException:
        return None


async def require_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Raises:
        HTTPException: 403 unless the role is admin or super_admin
    """
    if not is_admin(current_user):
        raise http_403_forbidden("Admin access required")
    return current_user


def require_permission(permission: AdminPermission):
    """
    Dependency factory for a single admin permission

    Usage:
        @router.put("/settings/{id}")
        async def update_setting(admin: User = Depends(require_permission(AdminPermission.MANAGE_SYSTEM))):
    """
    async def check_permission(admin: User = Depends(require_admin)) -> User:
        if not has_permission(admin, permission):
            raise http_403_forbidden("Insufficient permissions")
        return admin

    return check_permission


# ==============================================================================
# Service Singletons
# ==============================================================================
# Stateless clients are created once and shared between requests


@lru_cache(maxsize=1)
def get_llm_service():
    """
    Get singleton LLMService instance

    Returns:
        LLMService: Shared LiteLLM wrapper
    """
    from smartdocs.services.llm_service import LLMService
    return LLMService()


@lru_cache(maxsize=1)
def get_prompt_builder():
    """
    Get singleton PromptBuilder instance

    Prevents reloading the Jinja2 templates on every request
    """
    from smartdocs.prompts import PromptBuilder
    return PromptBuilder()


@lru_cache(maxsize=1)
def get_moyasar_client():
    from smartdocs.services.moyasar_service import MoyasarClient
    return MoyasarClient()


@lru_cache(maxsize=1)
def get_storage():
    """
    Get singleton storage backend (local or S3, from settings)

    Created on first use so S3 credentials are only needed by the
    endpoints that store files.
    """
    from smartdocs.storage import get_storage_backend
    return get_storage_backend()
