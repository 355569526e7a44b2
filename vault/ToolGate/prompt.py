"""
ToolGate Prompt Builder.

System prompt for the storage assistant's reasoner.
"""

from __future__ import annotations

from typing import Optional, Set

from vault.StorageGate.models import Identity
from vault.ToolGate.models import PolicyClass
from vault.ToolGate.registry import ToolRegistry


AGENT_PROTOCOL_PROMPT = """You are a helpful and friendly NAS assistant.
You answer questions about the files stored on this NAS and can run the tools listed below.

At every step respond with exactly one JSON object and nothing else.

To run a tool:
{"type": "action", "action": "<tool_name>", "params": {...}}

To answer the user:
{"type": "final", "message": "<your answer, formatted in Markdown>"}

After a tool runs you receive a message starting with "Tool <name> executed successfully. Observation:" or "Tool <name> failed. Error:". Use it to decide the next step.
Never invent tool results. If a tool fails, explain the failure to the user."""


def build_agent_prompt(
    identity: Optional[Identity] = None,
    enabled_policies: Optional[Set[PolicyClass]] = None,
) -> str:
    """
    Build the reasoner system prompt.

    Args:
        identity: Caller the tools run as
        enabled_policies: Policy classes whose tools are advertised

    Returns:
        System prompt text
    """
    if enabled_policies is None:
        enabled_policies = {PolicyClass.READ_ONLY}

    sections = [AGENT_PROTOCOL_PROMPT]

    if identity is not None:
        sections.append(f"You are assisting user {identity.username} (role: {identity.role.value}).")

    schemas = ToolRegistry.get_tools_for_prompt(enabled_policies)
    sections.append("## Available Tools\n\n" + (schemas or "None"))

    return "\n\n".join(sections)


__all__ = ["build_agent_prompt", "AGENT_PROTOCOL_PROMPT"]
