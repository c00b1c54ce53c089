"""Supabase client construction."""

import logging

from supabase import Client, create_client

from viewmaxx.config.settings import Settings

logger = logging.getLogger(__name__)


def create_supabase(settings: Settings) -> Client:
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for the supabase backend")
    logger.info("Connecting to Supabase at %s", settings.SUPABASE_URL)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
