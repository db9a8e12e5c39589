# supabase_client.py — per-user Supabase clients

from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from financetracker.config import SUPABASE_URL, SUPABASE_ANON_KEY


def create_user_client(access_token: str) -> Client:
    """
    Build a Supabase client that acts as the signed-in user.

    The token is the one minted by the identity provider's Supabase JWT
    template, so row-level security sees the caller's own claims. A new
    client is created per request; nothing is cached.
    """
    if not is_supabase_configured():
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables")

    options = ClientOptions(headers={"Authorization": f"Bearer {access_token}"})
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY, options=options)


def is_supabase_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY)
