"""Subscription management endpoints."""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.billing.nicepay import NicePayClient, get_nicepay_client
from sajang_api.db.repo_profiles import ProfileRepository
from sajang_api.db.session import get_db
from sajang_api.errors import EntitlementError, ValidationError
from sajang_api.schemas import SubscriptionCancelRequest, SuccessResponse

router = APIRouter(prefix="/subscription", tags=["subscription"])
logger = logging.getLogger(__name__)


@router.post("/cancel", response_model=SuccessResponse)
async def cancel_subscription(
    payload: SubscriptionCancelRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
    nicepay: NicePayClient = Depends(get_nicepay_client),
) -> SuccessResponse:
    """Expire the caller's NicePay billing key and mark the subscription canceled."""
    if not payload.billing_id:
        raise ValidationError("빌링키 정보가 필요합니다.")

    profiles = ProfileRepository(db)
    profile = profiles.get(auth.user_id)
    if profile is None or profile.billing_id != payload.billing_id:
        raise EntitlementError("유효하지 않은 빌링키입니다.", error_code="INVALID_BILLING_KEY")

    order_id = f"CANCEL_{auth.user_id[:8]}_{int(time.time() * 1000)}"
    await nicepay.expire_billing_key(payload.billing_id, order_id)

    profiles.cancel_subscription(auth.user_id)
    logger.info(
        "Subscription canceled",
        extra={"event": "subscription.canceled", "order_id": order_id},
    )
    return SuccessResponse(success=True, message="구독이 성공적으로 취소되었습니다.")
