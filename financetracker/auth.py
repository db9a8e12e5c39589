"""
auth.py — Identity-provider session to database session bridge.

A signed-in request carries a Clerk session token. We verify it, mint a
Supabase token through the Clerk JWT template, open a Supabase client as
that user and fetch (or create) the matching `user_profiles` row. The
result is an AuthContext that lives for one request.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request, status
from jose import jwt, JWTError
from postgrest.exceptions import APIError
from supabase import Client

from financetracker.clerk_client import ClerkClient, full_name, primary_email, primary_phone
from financetracker.config import CLERK_JWT_ALGORITHM, CLERK_JWT_KEY, CLERK_SUPABASE_TEMPLATE
from financetracker.models.user_profile import UserProfile
from financetracker.roles import Capability, Role, has_capability
from financetracker.supabase_client import create_user_client

logger = logging.getLogger(__name__)

# PostgREST: `.single()` matched zero rows
ROW_NOT_FOUND = "PGRST116"


@dataclass
class AuthContext:
    user_id: str
    session_id: str | None = None
    email: str | None = None
    full_name: str | None = None
    identity_metadata: dict = field(default_factory=dict)
    phone: str | None = None
    supabase_token: str | None = None
    client: Client | None = None
    profile: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def role(self) -> Role:
        """The stored profile role wins; the identity provider's only fills a missing profile."""
        if self.profile is not None:
            return self.profile.role
        return Role.parse(self.identity_metadata.get("role"))

    def has_role(self, role: Role | str) -> bool:
        return self.role == Role.parse(role)

    def has_capability(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)

    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_accountant(self) -> bool:
        return self.role in (Role.ADMIN, Role.ACCOUNTANT)

    def can_manage_transactions(self) -> bool:
        return self.has_capability(Capability.MANAGE_TRANSACTIONS)

    def close(self):
        """Drop the per-request database session."""
        self.client = None
        self.supabase_token = None


def verify_session_token(token: str) -> dict | None:
    """Decode and verify a Clerk session JWT. Returns the claims or None on failure."""
    if not CLERK_JWT_KEY:
        logger.error("CLERK_JWT_KEY is not configured; rejecting session token")
        return None
    try:
        return jwt.decode(
            token,
            CLERK_JWT_KEY,
            algorithms=[CLERK_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError:
        return None


def fetch_or_create_profile(client: Client, ctx: AuthContext) -> UserProfile:
    """Load the caller's profile row, inserting it on first sign-in."""
    try:
        row = client.table("user_profiles").select("*").eq("id", ctx.user_id).single().execute().data
        return UserProfile(**row)
    except APIError as e:
        if e.code != ROW_NOT_FOUND:
            raise

    logger.info(f"Creating profile for user {ctx.user_id}")
    rows = client.table("user_profiles").insert({
        "id": ctx.user_id,
        "email": ctx.email,
        "full_name": ctx.full_name or "User",
        "role": Role.parse(ctx.identity_metadata.get("role")).value,
        "company_name": ctx.identity_metadata.get("company_name"),
        "phone": ctx.phone,
    }).execute().data
    return UserProfile(**rows[0])


class AuthBridge:
    """Turns verified identity claims into an AuthContext."""

    def __init__(self, identity: ClerkClient | None = None, client_factory=create_user_client,
                 template: str = CLERK_SUPABASE_TEMPLATE):
        self.identity = identity or ClerkClient()
        self.client_factory = client_factory
        self.template = template

    async def establish(self, claims: dict) -> AuthContext:
        """
        One-way sync, no retries. Any failure is logged and leaves the
        context without a profile (and possibly without a database client).
        """
        ctx = AuthContext(user_id=claims.get("sub"), session_id=claims.get("sid"))
        try:
            user = await self.identity.get_user(ctx.user_id)
            ctx.email = primary_email(user)
            ctx.full_name = full_name(user)
            ctx.phone = primary_phone(user)
            ctx.identity_metadata = user.get("public_metadata") or {}

            token = await self.identity.get_template_token(ctx.session_id, self.template)
            if token:
                ctx.supabase_token = token
                # supabase-py is synchronous
                ctx.client = await asyncio.to_thread(self.client_factory, token)
                ctx.profile = await asyncio.to_thread(fetch_or_create_profile, ctx.client, ctx)
        except Exception as e:
            logger.error(f"Auth setup error for {ctx.user_id}: {e}")
        return ctx


_bridge_instance = None


def get_auth_bridge() -> AuthBridge:
    global _bridge_instance
    if _bridge_instance is None:
        _bridge_instance = AuthBridge()
    return _bridge_instance


async def get_auth_context(request: Request, bridge: AuthBridge = Depends(get_auth_bridge)):
    """
    FastAPI dependency — extracts the Bearer token from the Authorization
    header, verifies it, and yields the request's AuthContext.
    Raises HTTP 401 if the token is missing or invalid.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.split(" ", 1)[1]
    claims = verify_session_token(token)
    if claims is None or not claims.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ctx = await bridge.establish(claims)
    try:
        yield ctx
    finally:
        ctx.close()


def require_capability(capability: Capability):
    """Dependency factory: 403 unless the caller's role grants `capability`."""
    def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not ctx.has_capability(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Your role does not allow {capability.value}",
            )
        return ctx
    return dependency
