"""
LLMGate - Chat-completions client for the Vault assistant.

Talks to any OpenAI-compatible endpoint (LLM_API_URL) over httpx.
"""

from typing import Any, Dict, List, Optional

import httpx

from vault import Config
from vault.shared.gate import GateLogger, build_health_status

_log = GateLogger.get("LLMGate")

REQUEST_TIMEOUT = 120.0
SUMMARY_CHAR_LIMIT = 12000

SUMMARY_PROMPT = (
    "You are a helpful assistant that summarizes documents stored on a NAS. "
    "Write a concise summary of the following text in the language it is written in."
)


class LLMError(RuntimeError):
    """Reasoning service unavailable or returned a malformed response."""


def _get_api_key() -> str:
    # LLM_API_KEY first, then OPENAI_API_KEY
    api_key = Config.get("LLM_API_KEY") or Config.get("OPENAI_API_KEY")
    if not api_key:
        raise LLMError("LLM_API_KEY or OPENAI_API_KEY is not set.")
    return api_key


def is_configured() -> bool:
    return bool(Config.get("LLM_API_KEY") or Config.get("OPENAI_API_KEY"))


async def transmit_async(
    messages: List[Dict[str, Any]],
    model: Optional[str] = None,
    temperature: float = 0.2,
    max_tokens: Optional[int] = None,
) -> str:
    """
    Async non-streaming transmit. Returns the complete response text.

    Raises:
        ValueError: if the message list is empty
        LLMError: on transport failure or a malformed response
    """
    if not isinstance(messages, list) or len(messages) == 0:
        raise ValueError("Cannot transmit: message list is empty or invalid.")

    headers = {
        "Authorization": f"Bearer {_get_api_key()}",
        "Content-Type": "application/json",
    }

    payload: Dict[str, Any] = {
        "model": model or Config.get("DEFAULT_MODEL", "gpt-4o-mini"),
        "messages": messages,
        "temperature": temperature,
    }
    if max_tokens:
        payload["max_tokens"] = max_tokens

    api_url = Config.get("LLM_API_URL")

    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            response = await client.post(api_url, headers=headers, json=payload)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        _log.error(f"API call failed: {e}")
        raise LLMError(f"Failed to transmit to LLM: {e}") from e

    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        _log.error(f"Malformed response structure: {e}")
        raise LLMError(f"Malformed response structure: {e}") from e


async def summarize_text(text: str, model: Optional[str] = None) -> str:
    """Summarize extracted document text."""
    if not text:
        return "The document is empty."

    if len(text) > SUMMARY_CHAR_LIMIT:
        text = text[:SUMMARY_CHAR_LIMIT]

    messages = [
        {"role": "system", "content": SUMMARY_PROMPT},
        {"role": "user", "content": text},
    ]
    summary = await transmit_async(messages, model=model)
    return summary.strip()


def get_health_status() -> Dict[str, Any]:
    configured = is_configured()
    return build_health_status(
        gate_name="LLMGate",
        initialized=True,
        dependencies=["httpx"],
        checks={"api_key": configured},
        details={"model": Config.get("DEFAULT_MODEL"), "api_url": Config.get("LLM_API_URL")},
    )


__all__ = ["LLMError", "transmit_async", "summarize_text", "is_configured", "get_health_status"]
