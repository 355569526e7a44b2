"""
ToolGate Policy.

Maps caller roles onto the tool policy classes they may run.
"""

from __future__ import annotations

from typing import Optional, Set, Tuple

from vault.shared.gate import GateLogger
from vault.StorageGate.models import Identity
from vault.ToolGate.models import PolicyClass, ToolDefinition

_log = GateLogger.get("ToolGate")


def enabled_policies_for(identity: Identity) -> Set[PolicyClass]:
    """Policy classes available to a caller."""
    policies = {PolicyClass.READ_ONLY}
    if identity.is_admin:
        policies.add(PolicyClass.PRIVILEGED)
    return policies


def check(tool: ToolDefinition, identity: Identity) -> Tuple[bool, Optional[str]]:
    """
    Check if a caller may execute a tool.

    Returns:
        Tuple of (allowed, reason)
    """
    if tool.policy_class in enabled_policies_for(identity):
        return True, None

    _log.warning(f"{identity.username} ({identity.role.value}) denied tool {tool.name}")
    if tool.policy_class == PolicyClass.PRIVILEGED:
        return False, f"{tool.name} requires administrator privileges"
    return False, f"Policy class '{tool.policy_class.value}' not enabled for role {identity.role.value}"


__all__ = ["enabled_policies_for", "check"]
