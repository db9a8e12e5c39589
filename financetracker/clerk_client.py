"""
clerk_client.py — Clerk Backend API over httpx.
Only the two calls the session bridge needs: user lookup and JWT-template token minting.
"""
import httpx
from urllib.parse import quote

from financetracker.config import CLERK_API_URL, CLERK_SECRET_KEY


class ClerkClient:
    def __init__(self, secret_key: str = CLERK_SECRET_KEY, api_url: str = CLERK_API_URL, timeout: float = 10):
        self.secret_key = secret_key
        self.api_url = api_url
        self.timeout = timeout

    def _headers(self):
        if not self.secret_key:
            raise ValueError("CLERK_SECRET_KEY must be set in environment variables")
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def get_user(self, user_id: str) -> dict:
        """Fetch the identity provider's user record."""
        url = f"{self.api_url}/users/{quote(user_id)}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(url, headers=self._headers())
            resp.raise_for_status()
            return resp.json()

    async def get_template_token(self, session_id: str, template: str) -> str | None:
        """Mint a downstream-service JWT for a session from a named JWT template."""
        url = f"{self.api_url}/sessions/{quote(session_id)}/tokens/{quote(template)}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(url, headers=self._headers())
            resp.raise_for_status()
            return resp.json().get("jwt")


def primary_email(user: dict) -> str | None:
    primary_id = user.get("primary_email_address_id")
    for entry in user.get("email_addresses") or []:
        if entry.get("id") == primary_id:
            return entry.get("email_address")
    return None


def primary_phone(user: dict) -> str | None:
    primary_id = user.get("primary_phone_number_id")
    for entry in user.get("phone_numbers") or []:
        if entry.get("id") == primary_id:
            return entry.get("phone_number")
    return None


def full_name(user: dict) -> str | None:
    parts = [user.get("first_name"), user.get("last_name")]
    name = " ".join(p for p in parts if p)
    return name or None
