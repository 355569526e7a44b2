"""
ToolGate - Storage assistant tools.

Provides the fixed tool set the assistant may call and the bounded loop
that drives it.

## Usage

```python
from vault.ToolGate import create_agent_loop

loop = create_agent_loop(max_iterations=3)
reply = await loop.run("How much space is used?", identity, history)
print(reply.response)
```

## Decision Format

Each reasoner step is a single JSON object:

```json
{"type": "action", "action": "get_recent_files", "params": {"days": 3}}
{"type": "final", "message": "You stored 12 files this week."}
```
"""

from __future__ import annotations

from typing import List

from vault.shared.gate import GateLogger, build_health_status

from vault.ToolGate.models import (
    AgentAction,
    AgentDecision,
    AgentReply,
    ArgSchema,
    FinalAnswer,
    PolicyClass,
    ToolBudget,
    ToolDefinition,
    ToolResult,
)
from vault.ToolGate.registry import ToolRegistry, VAULT_TOOLS
from vault.ToolGate.protocol import (
    format_observation,
    parse_decision,
    validate_args,
)
from vault.ToolGate.policy import enabled_policies_for
from vault.ToolGate.prompt import build_agent_prompt
from vault.ToolGate.orchestrator import (
    AgentLoop,
    create_agent_loop,
)

_log = GateLogger.get("ToolGate")
_initialized = False


def initialize() -> bool:
    """
    Initialize ToolGate.

    Returns:
        True if initialization successful
    """
    global _initialized

    if _initialized:
        return True

    try:
        ToolRegistry.initialize()
        _initialized = True
        _log.info("ToolGate initialized")
        return True
    except Exception as e:
        _log.error(f"ToolGate initialization failed: {e}")
        return False


def is_initialized() -> bool:
    """Check if ToolGate is initialized."""
    return _initialized


def get_health_status() -> dict:
    """Get detailed health status."""
    tool_count = len(ToolRegistry.list_tools()) if _initialized else 0

    return build_health_status(
        gate_name="ToolGate",
        initialized=_initialized,
        dependencies=["StorageGate", "DocumentGate", "LLMGate"],
        checks={"tools_available": tool_count > 0},
        details={"tool_count": tool_count, "tools": ToolRegistry.list_tool_names() if _initialized else []},
    )


def list_tool_names() -> List[str]:
    return ToolRegistry.list_tool_names()


__all__ = [
    # Lifecycle
    "initialize",
    "is_initialized",
    "get_health_status",
    "list_tool_names",
    # Models
    "AgentAction",
    "AgentDecision",
    "AgentReply",
    "ArgSchema",
    "FinalAnswer",
    "PolicyClass",
    "ToolBudget",
    "ToolDefinition",
    "ToolResult",
    # Registry
    "ToolRegistry",
    "VAULT_TOOLS",
    # Protocol
    "parse_decision",
    "validate_args",
    "format_observation",
    "enabled_policies_for",
    "build_agent_prompt",
    # Orchestrator
    "AgentLoop",
    "create_agent_loop",
]
