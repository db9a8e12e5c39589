"""
roles.py — Roles, capabilities and the dashboard navigation menu.
Client-side gating only; row-level security in the database is the real boundary.
"""

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    VIEWER = "viewer"

    @classmethod
    def parse(cls, value) -> "Role":
        """Map a free-form role string onto a Role, defaulting to viewer."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.VIEWER


class Capability(str, Enum):
    VIEW_DASHBOARDS = "view_dashboards"
    VIEW_AI_INSIGHTS = "view_ai_insights"
    VIEW_TAX_ANALYTICS = "view_tax_analytics"
    MANAGE_TRANSACTIONS = "manage_transactions"
    MANAGE_BUDGETS = "manage_budgets"
    MANAGE_USERS = "manage_users"


_VIEWER = frozenset({Capability.VIEW_DASHBOARDS, Capability.VIEW_AI_INSIGHTS})
_ACCOUNTANT = _VIEWER | {
    Capability.VIEW_TAX_ANALYTICS,
    Capability.MANAGE_TRANSACTIONS,
    Capability.MANAGE_BUDGETS,
}
_ADMIN = _ACCOUNTANT | {Capability.MANAGE_USERS}

ROLE_CAPABILITIES: dict[Role, frozenset] = {
    Role.VIEWER: _VIEWER,
    Role.ACCOUNTANT: _ACCOUNTANT,
    Role.ADMIN: _ADMIN,
}


def has_capability(role: Role | str | None, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[Role.parse(role)]


def capabilities_for(role: Role | str | None) -> list[str]:
    return sorted(c.value for c in ROLE_CAPABILITIES[Role.parse(role)])


# ── Navigation ────────────────────────────────────────────────────
NAVIGATION = [
    {"name": "Executive Overview", "href": "/dashboard", "capability": Capability.VIEW_DASHBOARDS},
    {"name": "Budget Analytics", "href": "/dashboard/budget-analytics", "capability": Capability.VIEW_DASHBOARDS},
    {"name": "Cash Flow Monitor", "href": "/dashboard/cash-flow", "capability": Capability.VIEW_DASHBOARDS},
    {"name": "AI Insights", "href": "/dashboard/ai-insights", "capability": Capability.VIEW_AI_INSIGHTS},
    {"name": "GST & Tax Analytics", "href": "/dashboard/tax-analytics", "capability": Capability.VIEW_TAX_ANALYTICS},
]


def visible_menu(role: Role | str | None) -> list[dict]:
    """Menu entries the role may see, in display order."""
    return [
        {"name": item["name"], "href": item["href"]}
        for item in NAVIGATION
        if has_capability(role, item["capability"])
    ]
