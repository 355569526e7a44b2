"""
Health check API endpoint.

Aggregates health status from the vault gates.
"""

from __future__ import annotations

import importlib
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Response


# Gate registry: name -> (module_path, attribute, health_method)
# health_method is optional - defaults to "get_health_status"
GATE_REGISTRY: Dict[str, Tuple[str, str, Optional[str]]] = {
    "StorageGate": ("vault", "StorageGate", None),
    "AuditGate": ("vault", "AuditGate", None),
    "DocumentGate": ("vault", "DocumentGate", None),
    "LLMGate": ("vault", "LLMGate", None),
    "ToolGate": ("vault", "ToolGate", None),
    "ChatGate": ("vault", "ChatGate", None),
    "NotificationGate": ("vault", "NotificationGate", None),
}

# Reported, but a failing check here does not make the server unhealthy.
# File operations keep working without a model endpoint.
OPTIONAL_GATES = {"LLMGate"}


def _get_gate_health(
    module_path: str,
    attribute: str,
    health_method: Optional[str] = None,
) -> Dict[str, Any]:
    method_name = health_method or "get_health_status"

    module = importlib.import_module(f"{module_path}.{attribute}")
    gate = getattr(module, attribute, module)

    if hasattr(gate, method_name):
        return getattr(gate, method_name)()
    return {"healthy": False, "error": f"No {method_name} method"}


def _collect_health_data() -> Tuple[bool, Dict[str, Any]]:
    """
    Collect health data from all gates.

    Returns:
        Tuple of (all_healthy, gates_dict)
    """
    gates = {}
    all_healthy = True

    for gate_name, (module_path, attribute, health_method) in GATE_REGISTRY.items():
        try:
            gates[gate_name] = _get_gate_health(module_path, attribute, health_method)
        except Exception as e:
            gates[gate_name] = {"healthy": False, "error": str(e)}

        if not gates[gate_name].get("healthy", False) and gate_name not in OPTIONAL_GATES:
            all_healthy = False

    return all_healthy, gates


def create_router() -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    async def api_health(response: Response) -> Dict[str, Any]:
        """
        Aggregated gate health.

        Returns 200 when healthy, 503 when a required gate is unhealthy.
        """
        all_healthy, gates = _collect_health_data()

        summary = {name: status.get("healthy", False) for name, status in gates.items()}

        if not all_healthy:
            response.status_code = 503

        return {
            "healthy": all_healthy,
            "gates": summary,
        }

    return router


__all__ = ["create_router", "GATE_REGISTRY", "OPTIONAL_GATES"]
