"""Cached Supabase client backing the Supabase parcel store."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)


def supabase_configured() -> bool:
    return bool(settings.supabase_url and settings.supabase_key)


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Supabase client for parcel reads, or None when credentials are missing.

    Creating the client does not contact the server, so a bad URL or key only
    surfaces on the first parcel query.
    """
    if not supabase_configured():
        logger.info("SLA_SUPABASE_URL / SLA_SUPABASE_KEY not set - Supabase parcel store disabled")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as exc:
        logger.error(f"Could not create Supabase client for {settings.supabase_url}: {exc}")
        return None
