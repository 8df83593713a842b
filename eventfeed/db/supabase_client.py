from __future__ import annotations

from supabase import create_client, Client

from .. import config


def get_supabase_client() -> Client:
    config.require_env("SUPABASE_URL")
    if not config.SUPABASE_SERVICE_ROLE_KEY:
        config.require_env("SUPABASE_SERVICE_ROLE_KEY")
    return create_client(config.SUPABASE_URL or "", config.SUPABASE_SERVICE_ROLE_KEY or "")
