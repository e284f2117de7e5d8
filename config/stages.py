"""YAML-driven stage catalog overrides."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import yaml


def _load_yaml(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_stage_entries(path: str) -> Optional[List[Dict[str, Any]]]:
    """Return raw stage mappings from ``path`` or None when the file is absent.

    The file holds a top-level ``stages`` list; each entry uses the
    StageDefinition field names (``name``, ``order``, ``question_count`` ...).
    """

    if not os.path.exists(path):
        return None
    data = _load_yaml(path)
    stages = data.get("stages") if isinstance(data, dict) else None
    if not isinstance(stages, list):
        raise ValueError(f"Stage catalog '{path}' must define a 'stages' list")
    return [dict(entry) for entry in stages]


__all__ = ["load_stage_entries"]
