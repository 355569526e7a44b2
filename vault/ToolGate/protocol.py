"""
ToolGate Protocol Parser.

Parses the reasoner's decision from model output and formats tool
observations for the next step.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from vault.shared.gate import GateLogger
from vault.ToolGate.models import (
    AgentDecision,
    FinalAnswer,
    ToolDefinition,
    ToolResult,
)

_log = GateLogger.get("ToolGate")

OBSERVATION_LIMIT = 2000

_DECISION_ADAPTER = TypeAdapter(AgentDecision)

_FENCE_PATTERN = re.compile(r'```(?:json)?\s*\n?([\s\S]*?)\n?```')


# =============================================================================
# JSON Extraction
# =============================================================================


def _extract_json_objects(text: str) -> List[str]:
    """
    Extract potential JSON objects from text.

    Returns list of JSON string candidates.
    """
    candidates = []

    # Markdown code blocks first
    for match in _FENCE_PATTERN.finditer(text):
        content = match.group(1).strip()
        if content.startswith('{'):
            candidates.append(content)

    # Raw top-level objects
    depth = 0
    start = None
    for i, char in enumerate(text):
        if char == '{':
            if depth == 0:
                start = i
            depth += 1
        elif char == '}' and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                candidate = text[start:i + 1]
                if candidate not in candidates:
                    candidates.append(candidate)
                start = None

    return candidates


def is_decision_attempt(text: str) -> bool:
    """Whether the text looks like it was meant to carry a JSON decision."""
    return bool(text) and '"type"' in text and '{' in text


def parse_decision(text: Optional[str]) -> Optional[AgentDecision]:
    """
    Parse the reasoner's decision from model output.

    Plain prose with no JSON attempt is taken as a final answer. An empty
    reply, or a JSON attempt that does not validate, yields None.

    Args:
        text: Raw model output

    Returns:
        AgentAction, FinalAnswer, or None
    """
    if not text or not text.strip():
        return None

    if not is_decision_attempt(text):
        return FinalAnswer(message=text.strip())

    for json_str in _extract_json_objects(text):
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            _log.debug(f"Failed to parse decision JSON: {e}")
            continue

        if not isinstance(data, dict):
            continue

        try:
            return _DECISION_ADAPTER.validate_python(data)
        except ValidationError as e:
            _log.debug(f"Invalid decision: {e}")

    return None


# =============================================================================
# Arguments and observations
# =============================================================================


def validate_args(tool: ToolDefinition, args: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate arguments against tool's schema.

    Args:
        tool: Tool definition with schema
        args: Arguments to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    schema = tool.args_schema

    for arg_name, arg_schema in schema.items():
        if arg_schema.required and arg_name not in args:
            return False, f"Missing required argument: {arg_name}"

    for arg_name, value in args.items():
        if arg_name not in schema:
            return False, f"Unknown argument: {arg_name}"

        arg_schema = schema[arg_name]
        expected_type = arg_schema.type

        if value is None and not arg_schema.required:
            continue

        # bool is an int subclass; reject it for numeric arguments
        if expected_type == "string" and not isinstance(value, str):
            return False, f"Argument {arg_name} must be string, got {type(value).__name__}"
        elif expected_type == "integer" and (not isinstance(value, int) or isinstance(value, bool)):
            return False, f"Argument {arg_name} must be integer, got {type(value).__name__}"
        elif expected_type == "number" and (not isinstance(value, (int, float)) or isinstance(value, bool)):
            return False, f"Argument {arg_name} must be number, got {type(value).__name__}"
        elif expected_type == "boolean" and not isinstance(value, bool):
            return False, f"Argument {arg_name} must be boolean, got {type(value).__name__}"

        if arg_schema.enum and value not in arg_schema.enum:
            return False, f"Argument {arg_name} must be one of {arg_schema.enum}"

    return True, None


def apply_defaults(tool: ToolDefinition, args: Dict[str, Any]) -> Dict[str, Any]:
    """Drop null optional arguments so handler defaults apply."""
    return {
        name: value for name, value in args.items()
        if not (value is None and not tool.args_schema[name].required)
    }


def format_observation(result: ToolResult) -> str:
    """Render a tool result as the next message for the reasoner."""
    if not result.ok:
        return f"Tool {result.tool} failed. Error: {result.error}"

    result_str = json.dumps(result.result, default=str, ensure_ascii=False)
    if len(result_str) > OBSERVATION_LIMIT:
        result_str = result_str[:OBSERVATION_LIMIT] + "...[truncated]"
    return f"Tool {result.tool} executed successfully. Observation: {result_str}"


__all__ = [
    "parse_decision",
    "is_decision_attempt",
    "validate_args",
    "apply_defaults",
    "format_observation",
]
