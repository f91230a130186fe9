"""Supabase access for the message store."""

import time
from functools import lru_cache

from supabase import Client, create_client

from message_board.core.config import get_settings
from message_board.models.message import MESSAGES_TABLE
from message_board.schemas.common import CheckResult


@lru_cache
def get_supabase_client() -> Client:
    """Shared Supabase client, authenticated with the backend secret key.

    The secret key bypasses row level security, so the message service
    scopes every query to the verified user id itself.
    """
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_secret_key)


async def check_database_connection() -> CheckResult:
    """Probe the messages table with a one-row select.

    Returns:
        CheckResult: ``database`` check with its latency, and the error text
            if the store could not be reached.
    """
    started = time.perf_counter()
    try:
        get_supabase_client().table(MESSAGES_TABLE).select("id").limit(1).execute()
        error = None
    except Exception as e:
        error = str(e)
    latency_ms = round((time.perf_counter() - started) * 1000, 2)
    return CheckResult(name="database", healthy=error is None, latency_ms=latency_ms, error=error)
