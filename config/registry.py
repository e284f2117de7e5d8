"""In-memory registry for swappable collaborators (inference, notifications)."""
from typing import Any, Dict

_REGISTRY: Dict[str, Any] = {}


def bind_model(key: str, impl: Any) -> None:
    """Bind an implementation to a registry key."""
    _REGISTRY[key] = impl


def get_model(key: str) -> Any:
    """Retrieve an implementation from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def is_bound(key: str) -> bool:
    return key in _REGISTRY


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


INFERENCE_KEY = "models.interview_inference"
NOTIFIER_KEY = "notifications.stage_invitation"
