# ---------- routes/auth_routes.py ----------
"""
Session introspection. Sign-in and sign-up live with the identity provider;
the backend only reports who the caller is and what they may see.
"""
from fastapi import APIRouter, Depends

from financetracker.auth import AuthContext, get_auth_context
from financetracker.roles import capabilities_for, visible_menu

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.get("/me")
async def me(ctx: AuthContext = Depends(get_auth_context)):
    """Profile, effective role, capabilities and navigation menu for the caller."""
    role = ctx.role
    return {
        "user_id": ctx.user_id,
        "email": ctx.email,
        "full_name": ctx.full_name,
        "profile": ctx.profile.model_dump(mode="json") if ctx.profile else None,
        "profile_ready": ctx.profile is not None,
        "role": role.value,
        "capabilities": capabilities_for(role),
        "menu": visible_menu(role),
    }
