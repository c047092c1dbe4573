"""Permission bag helpers.

A user's permissions are a nested mapping ``{module: {action: bool}}``.
Admins implicitly hold every permission.
"""
from typing import Dict

AVAILABLE_MODULES: Dict[str, dict] = {
    "dashboard": {"name": "Dashboard", "actions": ["read", "write"]},
    "qa-forms": {"name": "QA Forms", "actions": ["read", "write"]},
    "users": {"name": "Users", "actions": ["read", "write"]},
    "groups": {"name": "Groups", "actions": ["read", "write"]},
    "settings": {"name": "Settings", "actions": ["read", "write"]},
    "criteria": {"name": "QA Criteria", "actions": ["read", "write"]},
    "agents": {"name": "Agents", "actions": ["read", "write"]},
    "agent-comparison": {"name": "Agent Comparison", "actions": ["read"]},
    "trend-analysis": {"name": "Trend Analysis", "actions": ["read"]},
    "exports": {"name": "Exports", "actions": ["read"]},
    "evaluations": {"name": "Evaluations", "actions": ["read", "write"]},
}


def empty_permissions() -> Dict[str, Dict[str, bool]]:
    """Every module with every action set to False."""
    return {
        module: {action: False for action in info["actions"]}
        for module, info in AVAILABLE_MODULES.items()
    }


def admin_permissions() -> Dict[str, Dict[str, bool]]:
    """Every module with every action set to True."""
    return {
        module: {action: True for action in info["actions"]}
        for module, info in AVAILABLE_MODULES.items()
    }


def normalize_permissions(raw: dict) -> Dict[str, Dict[str, bool]]:
    """Drop unknown modules/actions and fill missing ones with False."""
    result = empty_permissions()
    for module, actions in (raw or {}).items():
        if module not in result or not isinstance(actions, dict):
            continue
        for action, allowed in actions.items():
            if action in result[module]:
                result[module][action] = bool(allowed)
    return result


def has_permission(user, permission: str) -> bool:
    """Check ``"module.action"`` for a user; admins always pass."""
    if user is None:
        return False
    if user.is_admin:
        return True
    module, _, action = permission.partition(".")
    return bool(user.permissions.get(module, {}).get(action or "read", False))
