"""
ToolGate Models.

Tool definitions, execution results and the reasoner's per-step decision.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class PolicyClass(str, Enum):
    """Security policy classes for tools."""

    READ_ONLY = "read_only"  # No side effects
    PRIVILEGED = "privileged"  # Administrator only


class ToolResult(BaseModel):
    """Result from tool execution."""

    type: Literal["tool_result"] = "tool_result"
    tool: str
    ok: bool
    result: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, tool: str, result: Any) -> "ToolResult":
        """Create a successful result."""
        return cls(tool=tool, ok=True, result=result)

    @classmethod
    def failure(cls, tool: str, error: str) -> "ToolResult":
        """Create a failed result."""
        return cls(tool=tool, ok=False, error=error)


class ArgSchema(BaseModel):
    """JSON Schema for a tool argument."""

    type: str = "string"
    description: str = ""
    required: bool = True
    default: Optional[Any] = None
    enum: Optional[List[Any]] = None


class ToolDefinition(BaseModel):
    """Complete tool definition for registry."""

    name: str = Field(description="Tool name, e.g., get_recent_files")
    description: str = Field(description="Human-readable description")
    handler: str = Field(description="Function name in ToolGate.handlers")
    policy_class: PolicyClass = Field(default=PolicyClass.READ_ONLY)
    is_async: bool = Field(default=False, description="Whether the handler is async")
    args_schema: Dict[str, ArgSchema] = Field(
        default_factory=dict, description="Argument schemas"
    )

    def to_prompt_schema(self) -> str:
        """Generate schema documentation for the system prompt."""
        lines = [f"### {self.name}", f"{self.description}", ""]

        if self.args_schema:
            lines.append("**Arguments:**")
            for arg_name, arg_schema in self.args_schema.items():
                req = "(required)" if arg_schema.required else "(optional)"
                default = f", default={arg_schema.default}" if arg_schema.default is not None else ""
                lines.append(f"- `{arg_name}`: {arg_schema.type} {req}{default}")
                if arg_schema.description:
                    lines.append(f"  {arg_schema.description}")
        else:
            lines.append("**Arguments:** None")

        return "\n".join(lines)


class ToolBudget(BaseModel):
    """Iteration budget for one agent run."""

    max_iterations: int = Field(default=3, description="Max reasoning iterations")
    iterations_used: int = 0

    def can_iterate(self) -> bool:
        return self.iterations_used < self.max_iterations

    def use_iteration(self) -> None:
        self.iterations_used += 1


# =============================================================================
# Reasoner decisions
# =============================================================================


class AgentAction(BaseModel):
    """Run a tool and feed the observation back to the reasoner."""

    type: Literal["action"] = "action"
    action: str = Field(description="Tool name")
    params: Dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"AgentAction({self.action})"


class FinalAnswer(BaseModel):
    """Reply to the user and stop."""

    type: Literal["final"] = "final"
    message: str = ""


AgentDecision = Annotated[Union[AgentAction, FinalAnswer], Field(discriminator="type")]


class AgentReply(BaseModel):
    """Outcome of one agent run."""

    response: str
    iterations: int = 0
    tool_results: List[ToolResult] = Field(default_factory=list)
    completed: bool = Field(default=True, description="False when the iteration budget ran out")


__all__ = [
    "PolicyClass",
    "ToolResult",
    "ArgSchema",
    "ToolDefinition",
    "ToolBudget",
    "AgentAction",
    "FinalAnswer",
    "AgentDecision",
    "AgentReply",
]
