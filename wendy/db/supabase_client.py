"""Lazily created Supabase client for the 'supabase' job store."""

from supabase import create_client, Client
from wendy.config import settings

_client: Client | None = None


def get_supabase() -> Client:
    """Return the shared client, connecting with the service role key on first use.

    Raises RuntimeError when the job store is configured for Supabase but the
    credentials are missing.
    """
    global _client
    if _client is not None:
        return _client

    missing = [
        name for name, value in (
            ("SUPABASE_URL", settings.supabase_url),
            ("SUPABASE_SERVICE_ROLE_KEY", settings.supabase_service_role_key),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(
            f"job_store=supabase needs {' and '.join(missing)} to be set"
        )
    _client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    return _client
