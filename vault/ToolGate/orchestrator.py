"""
ToolGate Orchestrator.

Runs the bounded reason/act loop for one chat message.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

from vault import Config, LLMGate
from vault.shared.gate import GateLogger
from vault.StorageGate.models import Identity
from vault.ToolGate import handlers, policy
from vault.ToolGate.models import (
    AgentAction,
    AgentReply,
    FinalAnswer,
    ToolBudget,
    ToolDefinition,
    ToolResult,
)
from vault.ToolGate.prompt import build_agent_prompt
from vault.ToolGate.protocol import (
    apply_defaults,
    format_observation,
    parse_decision,
    validate_args,
)
from vault.ToolGate.registry import ToolRegistry

_log = GateLogger.get("ToolGate")

# messages -> raw model output
Reasoner = Callable[[List[Dict[str, Any]]], Awaitable[str]]

EXHAUSTED_RESPONSE = "I could not complete your request within the allowed iterations."
EMPTY_FINAL_RESPONSE = "No response provided."


async def _dispatch_tool(tool: ToolDefinition, identity: Identity, args: Dict[str, Any]) -> Any:
    """Call a tool's handler with validated arguments."""
    method = getattr(handlers, tool.handler)

    if tool.is_async:
        return await method(identity, **args)
    return method(identity, **args)


class AgentLoop:
    """
    Bounded reason/act loop.

    Each iteration asks the reasoner for a decision. An action runs a tool
    and feeds the observation back; a final answer ends the run. A step
    without a valid decision uses up the iteration and the loop continues.
    """

    def __init__(
        self,
        reasoner: Optional[Reasoner] = None,
        max_iterations: Optional[int] = None,
        emit_event: Optional[Callable] = None,
    ):
        """
        Initialize the loop.

        Args:
            reasoner: Async callable returning model output (default: LLMGate.transmit_async)
            max_iterations: Iteration bound (default: AGENT_MAX_ITERATIONS)
            emit_event: Optional async callback for tool events
        """
        self.reasoner = reasoner or LLMGate.transmit_async
        self.max_iterations = max_iterations or Config.get("AGENT_MAX_ITERATIONS", 3)
        self.emit_event = emit_event

        ToolRegistry.initialize()

    async def _emit(self, event_type: str, message: str, **kwargs) -> None:
        """Emit an event if callback is configured."""
        if self.emit_event:
            try:
                await self.emit_event(event_type, message, **kwargs)
            except Exception as e:
                _log.warning(f"Event emission failed: {e}")

    async def execute(self, action: AgentAction, identity: Identity) -> ToolResult:
        """
        Execute a single tool action as ``identity``.

        Never raises: unknown tools, bad arguments, policy denials and
        handler errors all come back as failed results.
        """
        tool = ToolRegistry.get_tool(action.action)
        if not tool:
            return ToolResult.failure(action.action, f"Unknown tool: {action.action}")

        valid, error = validate_args(tool, action.params)
        if not valid:
            return ToolResult.failure(tool.name, f"Invalid arguments: {error}")

        allowed, reason = policy.check(tool, identity)
        if not allowed:
            return ToolResult.failure(tool.name, f"Policy denied: {reason}")

        try:
            await self._emit("tool", f"Executing {tool.name}", user=identity.username)
            result = await _dispatch_tool(tool, identity, apply_defaults(tool, action.params))
            _log.info(f"Tool {tool.name} executed successfully")
            return ToolResult.success(tool.name, result)

        except Exception as e:
            _log.error(f"Tool {tool.name} failed: {e}")
            return ToolResult.failure(tool.name, str(e) or type(e).__name__)

    async def run(
        self,
        message: str,
        identity: Identity,
        history: Optional[List[Dict[str, Any]]] = None,
    ) -> AgentReply:
        """
        Run the loop for one user message.

        Args:
            message: User message
            identity: Caller the tools run as
            history: Prior conversation turns ({"role", "content"} dicts)

        Returns:
            AgentReply with the response text and any tool results
        """
        budget = ToolBudget(max_iterations=self.max_iterations)
        system_prompt = build_agent_prompt(identity, policy.enabled_policies_for(identity))

        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": message})

        tool_results: List[ToolResult] = []

        while budget.can_iterate():
            budget.use_iteration()
            _log.debug(f"Iteration {budget.iterations_used}/{budget.max_iterations}")

            try:
                raw = await self.reasoner(list(messages))
            except Exception as e:
                _log.error(f"Reasoner call failed: {e}")
                raw = None

            decision = parse_decision(raw)

            if decision is None:
                _log.warning("Reasoner returned no valid decision; continuing")
                continue

            if isinstance(decision, FinalAnswer):
                return AgentReply(
                    response=decision.message or EMPTY_FINAL_RESPONSE,
                    iterations=budget.iterations_used,
                    tool_results=tool_results,
                )

            _log.info(f"Reasoner chose {decision.action} with params {decision.params}")
            result = await self.execute(decision, identity)
            tool_results.append(result)

            messages.append({"role": "assistant", "content": raw})
            messages.append({"role": "user", "content": format_observation(result)})

        _log.warning("Max iterations reached")
        return AgentReply(
            response=EXHAUSTED_RESPONSE,
            iterations=budget.iterations_used,
            tool_results=tool_results,
            completed=False,
        )


def create_agent_loop(
    reasoner: Optional[Reasoner] = None,
    max_iterations: Optional[int] = None,
    emit_event: Optional[Callable] = None,
) -> AgentLoop:
    """Create a configured agent loop."""
    return AgentLoop(reasoner=reasoner, max_iterations=max_iterations, emit_event=emit_event)


__all__ = ["AgentLoop", "create_agent_loop", "EXHAUSTED_RESPONSE"]
