"""
User profile, token usage and referral endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user
from smartdocs.models.user import User
from smartdocs.models.referral_reward import ReferralReward
from smartdocs.schemas.user import UserProfile, UserUpdate, TokenUsageResponse
from smartdocs.services.quota_service import QuotaService
from smartdocs.utils.sanitize import mask_email
from smartdocs.utils.time import isoformat

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfile)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return current_user


@router.patch("/me", response_model=UserProfile)
async def update_profile(
    update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update name, language, company and industry

    Only the fields present in the request are changed.
    """
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/me/tokens", response_model=TokenUsageResponse)
async def get_token_usage(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Token quota for the current billing cycle"""
    return QuotaService(db).get_usage(current_user)


@router.get("/me/referrals")
async def get_referrals(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Referral code and history

    Referred users are shown with masked email addresses. A referral is
    completed once the referred user has verified their email.
    """
    referred_users = (
        db.query(User)
        .filter(User.referred_by_id == current_user.id)
        .order_by(User.created_at.desc())
        .all()
    )
    rewards = db.query(ReferralReward).filter(ReferralReward.user_id == current_user.id).all()
    tokens_by_referred = {}
    for reward in rewards:
        tokens_by_referred[reward.referred_id] = tokens_by_referred.get(reward.referred_id, 0) + reward.tokens

    history = [
        {
            "email": mask_email(referred.email),
            "status": "completed" if referred.email_verified else "pending",
            "tokens_earned": tokens_by_referred.get(referred.id, 0),
            "created_at": isoformat(referred.created_at),
        }
        for referred in referred_users
    ]

    return {
        "referral_code": current_user.referral_code,
        "total_referrals": len(referred_users),
        "pending_referrals": sum(1 for entry in history if entry["status"] == "pending"),
        "total_tokens_earned": sum(r.tokens for r in rewards if r.claimed),
        "available_tokens": current_user.total_referral_tokens or 0,
        "referral_history": history,
    }
