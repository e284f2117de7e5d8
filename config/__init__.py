"""Configuration package for the mock interview stage service."""
from .registry import INFERENCE_KEY, NOTIFIER_KEY, bind_model, get_model, is_bound, unbind_model
from .routes import AppConfig, LlmRoute, load_app_registry, load_config, resolve_registry
from .settings import Settings, settings
from .stages import load_stage_entries

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
    "INFERENCE_KEY",
    "NOTIFIER_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "unbind_model",
    "Settings",
    "settings",
    "load_stage_entries",
]
