"""
ToolGate Registry.

The fixed set of storage assistant tools with their schemas and policies.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

from vault.shared.gate import GateLogger
from vault.ToolGate.models import (
    ArgSchema,
    PolicyClass,
    ToolDefinition,
)

_log = GateLogger.get("ToolGate")


# =============================================================================
# Tool Definitions
# =============================================================================

VAULT_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_disk_usage",
        "description": "Get the total number of bytes stored on the NAS",
        "policy": PolicyClass.READ_ONLY,
        "args": {},
    },
    {
        "name": "get_recent_files",
        "description": "List files modified within the last N days",
        "policy": PolicyClass.READ_ONLY,
        "args": {
            "days": ArgSchema(type="number", description="How many days back to look", required=False, default=7),
        },
    },
    {
        "name": "create_incremental_backup",
        "description": "Start an incremental backup of the NAS (administrators only)",
        "policy": PolicyClass.PRIVILEGED,
        "args": {},
    },
    {
        "name": "get_suspicious_activity",
        "description": "Get recent suspicious activity such as denied accesses and failed logins",
        "policy": PolicyClass.READ_ONLY,
        "args": {
            "limit": ArgSchema(type="integer", description="Max events", required=False, default=20),
        },
    },
    {
        "name": "list_documents_by_name",
        "description": "Find documents whose file name contains the given text",
        "policy": PolicyClass.READ_ONLY,
        "args": {
            "name": ArgSchema(type="string", description="Full or partial document name", required=True),
        },
    },
    {
        "name": "summarize_document",
        "description": "Summarize the contents of a .txt, .md, .docx or .pdf document",
        "policy": PolicyClass.READ_ONLY,
        "is_async": True,
        "args": {
            "file_path": ArgSchema(
                type="string",
                description="Document path as returned by list_documents_by_name",
                required=True,
            ),
        },
    },
]


class ToolRegistry:
    """Central registry of all available tools."""

    _tools: Dict[str, ToolDefinition] = {}
    _initialized: bool = False

    @classmethod
    def initialize(cls) -> None:
        """Initialize registry with the storage tools."""
        if cls._initialized:
            return

        for tool_config in VAULT_TOOLS:
            cls.register(tool_config)

        cls._initialized = True
        _log.info(f"Tool registry initialized with {len(cls._tools)} tools")

    @classmethod
    def register(cls, tool_config: Dict[str, Any]) -> ToolDefinition:
        """Register a tool from its config dict."""
        args_schema = {}
        for arg_name, arg_def in tool_config.get("args", {}).items():
            if isinstance(arg_def, ArgSchema):
                args_schema[arg_name] = arg_def
            elif isinstance(arg_def, dict):
                args_schema[arg_name] = ArgSchema(**arg_def)

        tool = ToolDefinition(
            name=tool_config["name"],
            description=tool_config["description"],
            handler=tool_config.get("handler", tool_config["name"]),
            policy_class=tool_config.get("policy", PolicyClass.READ_ONLY),
            is_async=tool_config.get("is_async", False),
            args_schema=args_schema,
        )

        cls._tools[tool.name] = tool
        return tool

    @classmethod
    def get_tool(cls, name: str) -> Optional[ToolDefinition]:
        """Get tool definition by name."""
        cls.initialize()
        return cls._tools.get(name)

    @classmethod
    def list_tools(cls, policy_filter: Optional[Set[PolicyClass]] = None) -> List[ToolDefinition]:
        """List tools, optionally filtered by policy."""
        cls.initialize()

        tools = list(cls._tools.values())
        if policy_filter:
            tools = [t for t in tools if t.policy_class in policy_filter]
        return tools

    @classmethod
    def list_tool_names(cls, policy_filter: Optional[Set[PolicyClass]] = None) -> List[str]:
        return [t.name for t in cls.list_tools(policy_filter)]

    @classmethod
    def get_tools_for_prompt(cls, enabled_policies: Set[PolicyClass]) -> str:
        """Schema reference section for the system prompt."""
        tools = cls.list_tools(enabled_policies)
        return "\n\n".join(t.to_prompt_schema() for t in tools)

    @classmethod
    def reset(cls) -> None:
        cls._tools = {}
        cls._initialized = False


__all__ = ["ToolRegistry", "VAULT_TOOLS"]
