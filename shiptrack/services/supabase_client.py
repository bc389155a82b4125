from fastapi import Depends
from supabase import create_client, Client, ClientOptions

from shiptrack.config import Settings, get_settings


def _client(url: str, key: str) -> Client:
    # Server side: never persist or refresh sessions between requests
    options = ClientOptions(persist_session=False, auto_refresh_token=False)
    return create_client(url, key, options=options)


def get_auth_client(settings: Settings = Depends(get_settings)) -> Client:
    """Anon-key client; only used to ask the identity provider who a token belongs to."""
    return _client(settings.supabase_url, settings.anon_key)


def get_supabase(settings: Settings = Depends(get_settings)) -> Client:
    """Service-role client for membership and shipment reads."""
    return _client(settings.supabase_url, settings.service_role_key)
