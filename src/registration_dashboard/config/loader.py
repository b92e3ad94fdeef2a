from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import yaml
from dotenv import load_dotenv

from registration_dashboard.config.models import AppConfig, ConfigLoadRequest

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _deep_merge_dicts(base: MutableMapping[str, Any], override: Mapping[str, Any]) -> None:
    # Lists (such as `datasets`) are replaced wholesale, mappings are merged.
    for k, v in override.items():
        if isinstance(v, Mapping) and isinstance(base.get(k), Mapping):
            _deep_merge_dicts(base[k], v)  # type: ignore[index]
            continue
        base[k] = v


def _read_yaml_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping, got: {type(data).__name__}")
    return data


def _env_var_name_to_segments(env_var_name: str, prefix: str) -> Sequence[str]:
    parts = [p for p in env_var_name[len(prefix) :].split("__") if p]
    if not parts:
        raise ValueError(f"Invalid environment variable override name: {env_var_name}")
    return [p.lower() for p in parts]


def _get_parent_mapping(config: MutableMapping[str, Any], path: Sequence[str]) -> MutableMapping[str, Any]:
    cur: MutableMapping[str, Any] = config
    for segment in path[:-1]:
        next_value = cur.get(segment)
        if next_value is None:
            raise KeyError(f"Unknown configuration key path: {'.'.join(path)}")
        if not isinstance(next_value, dict):
            raise TypeError(f"Configuration key path does not point to a mapping: {'.'.join(path)}")
        cur = next_value
    return cur


def _coerce_override(dotted: str, existing: Any, raw: str) -> Any:
    if isinstance(existing, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean override for '{dotted}': {raw!r}")
    if isinstance(existing, (int, float)):
        # Left as text; pydantic validates the numeric value.
        return raw.strip()
    if isinstance(existing, str) or existing is None:
        return raw
    raise TypeError(
        f"Environment variable overrides are only allowed for scalar values. "
        f"Key '{dotted}' is {type(existing).__name__}."
    )


def _apply_env_overrides(config: MutableMapping[str, Any], env_prefix: str) -> None:
    for name, value in os.environ.items():
        if not name.startswith(env_prefix):
            continue

        segments = _env_var_name_to_segments(name, env_prefix)
        parent = _get_parent_mapping(config, segments)
        leaf = segments[-1]
        dotted = ".".join(segments)

        if leaf not in parent:
            raise KeyError(f"Unknown configuration key path: {dotted}")
        parent[leaf] = _coerce_override(dotted, parent[leaf], value)


class YamlConfigLoader:
    """
    Defaults < YAML file < `.env` / process environment (`APP__SECTION__KEY`).
    """

    async def load(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> AppConfig:
        config: dict[str, Any] = copy.deepcopy(AppConfig().model_dump(mode="python"))

        if request.yaml_path is not None:
            _deep_merge_dicts(config, _read_yaml_config(Path(request.yaml_path)))

        if request.dotenv_path is not None and Path(request.dotenv_path).exists():
            load_dotenv(dotenv_path=request.dotenv_path, override=False)

        _apply_env_overrides(config, request.env_prefix)
        return AppConfig.model_validate(config)
