"""Supabase clients.

Two credentials are used:
- publishable key (SB_PUBLISHABLE_KEY, legacy SUPABASE_ANON_KEY): one shared
  client that validates session JWTs via auth.get_user()
- secret key (SB_SECRET_KEY, legacy SUPABASE_SERVICE_ROLE_KEY): service-role
  client for Edge Function dispatch; bypasses RLS, so it is built per request
  and never cached
"""

import logging
import os
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


def _resolve_key(purpose: str, preferred: str, legacy: str) -> str:
    """Read a Supabase key, falling back to its pre-2024 variable name.

    Raises:
        RuntimeError: If neither variable is set
    """
    value = os.getenv(preferred)
    if value:
        return value

    value = os.getenv(legacy)
    if value:
        logger.info(
            "Using legacy Supabase key name",
            extra={"event": "supabase.config.legacy_key", "variable": legacy, "preferred": preferred},
        )
        return value

    raise RuntimeError(f"Supabase {purpose} key missing: set {preferred} (or legacy {legacy}).")


@lru_cache(maxsize=1)
def get_supabase_url() -> str:
    """SUPABASE_URL (https://<project_ref>.supabase.co).

    Raises:
        RuntimeError: If SUPABASE_URL not set
    """
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError("SUPABASE_URL environment variable not set.")
    return url


@lru_cache(maxsize=1)
def get_supabase_api_key() -> str:
    return _resolve_key("publishable", "SB_PUBLISHABLE_KEY", "SUPABASE_ANON_KEY")


@lru_cache(maxsize=1)
def get_supabase_secret_key() -> str:
    return _resolve_key("secret", "SB_SECRET_KEY", "SUPABASE_SERVICE_ROLE_KEY")


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Shared client for session validation.

    It never holds a user session (JWTs are passed to auth.get_user()
    explicitly), so one instance serves every request.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    logger.info("Initializing Supabase client", extra={"supabase_url": url, "key_type": "publishable"})
    return create_client(url, get_supabase_api_key())


def create_supabase_admin_client() -> Client:
    """Service-role client for one request.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    logger.debug("Creating Supabase admin client", extra={"supabase_url": url, "key_type": "secret"})
    return create_client(url, get_supabase_secret_key())
