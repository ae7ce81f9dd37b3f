"""Session authentication for user endpoints.

Supabase JWT-based session auth.

FLOW:
1. User signs in through Supabase Auth on the frontend -> access_token
2. Frontend calls the API with Authorization: Bearer <jwt>
3. The JWT is validated by Supabase (auth.get_user)
4. Returns SessionAuthContext(user_id, email)

Scheduler endpoints authenticate with the shared CRON_SECRET_KEY instead.
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sajang_api.config import env
from sajang_api.context import user_id_var
from sajang_api.errors import AuthError
from sajang_api.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# HTTPBearer scheme for session JWT
session_security = HTTPBearer(auto_error=False, description="Supabase JWT Session Token")

LOGIN_REQUIRED_MESSAGE = "로그인이 필요합니다."
INVALID_SESSION_MESSAGE = "유효하지 않은 인증 정보입니다. 다시 로그인해주세요."


class SessionAuthContext:
    """Session authentication context for user-authenticated requests."""

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


async def get_session_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
) -> SessionAuthContext:
    """Get session authentication context from Supabase JWT.

    Args:
        credentials: HTTP Bearer credentials (JWT)

    Returns:
        SessionAuthContext with user_id and email

    Raises:
        AuthError: 401 if the header is missing or the token is rejected
    """
    if not credentials:
        raise AuthError(LOGIN_REQUIRED_MESSAGE)

    jwt_token = credentials.credentials

    try:
        supabase = get_supabase_client()
        # Supabase validates signature and expiration
        user_response = supabase.auth.get_user(jwt_token)
    except Exception as e:
        logger.error(f"JWT validation failed: {e}", exc_info=True)
        raise AuthError(INVALID_SESSION_MESSAGE) from e

    if not user_response or not user_response.user:
        raise AuthError(INVALID_SESSION_MESSAGE)

    user = user_response.user
    user_id_var.set(user.id)

    logger.info(
        "Session JWT validated",
        extra={"event": "session.jwt.validated", "user_id": user.id},
    )
    return SessionAuthContext(user_id=user.id, email=user.email)


def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
) -> None:
    """Authorize scheduler calls: Authorization: Bearer <CRON_SECRET_KEY>.

    Raises:
        AuthError: 401 if the secret is unset or does not match
    """
    expected = env.get_cron_secret_key()
    if not expected or not credentials:
        raise AuthError("Unauthorized")
    if not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        logger.warning("Cron secret mismatch", extra={"event": "cron.auth.rejected"})
        raise AuthError("Unauthorized")
