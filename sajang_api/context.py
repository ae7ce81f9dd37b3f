"""Request context management for observability.

Context variables for request tracking across async boundaries.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Authenticated user (Supabase auth user id)
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Place row currently being processed (places.id)
place_id_var: ContextVar[str] = ContextVar("place_id", default="")
