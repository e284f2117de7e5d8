"""LLM routes and the operation -> route registry, read from ``app_config.json``."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, Field, model_validator


class LlmRoute(BaseModel):
    """One OpenAI-compatible chat completions endpoint."""

    name: str
    base_url: str
    endpoint: str = "/chat/completions"
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: Optional[str] = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
    sequential: bool = False

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.endpoint.lstrip("/")


class AppConfig(BaseModel):
    """``llm_routes`` by id, and ``registry`` mapping operation keys to route ids."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]

    @model_validator(mode="after")
    def _registry_targets_exist(self) -> "AppConfig":
        dangling = sorted(key for key, route_id in self.registry.items() if route_id not in self.llm_routes)
        if dangling:
            raise ValueError(f"Registry entries point at unknown routes: {', '.join(dangling)}")
        return self

    def route_for(self, key: str) -> LlmRoute:
        try:
            return self.llm_routes[self.registry[key]]
        except KeyError:
            raise KeyError(f"No LLM route registered for '{key}'") from None


def load_config(path: Path) -> AppConfig:
    return AppConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))


def resolve_registry(
    cfg: AppConfig, schemas: Dict[str, Type[BaseModel]]
) -> Dict[str, Tuple[LlmRoute, Type[BaseModel]]]:
    """Pair each operation's route with the output schema it must produce."""

    return {key: (cfg.route_for(key), schema) for key, schema in schemas.items()}


def load_app_registry(
    path: Path, schemas: Dict[str, Type[BaseModel]]
) -> Dict[str, Tuple[LlmRoute, Type[BaseModel]]]:
    return resolve_registry(load_config(path), schemas)
