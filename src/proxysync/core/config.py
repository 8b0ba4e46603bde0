from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import find_dotenv, load_dotenv


# ---------- Typed sections ----------

@dataclass
class AppSection:
    run_id: Optional[str] = None


@dataclass
class InputSection:
    dir: str = ""
    pattern: str = "*.json"


@dataclass
class OutputSection:
    format: str = "table"     # table | json


@dataclass
class LoggingSection:
    base_dir: str = "logs"
    console_level: str = "INFO"   # INFO..CRITICAL
    file_level: str = "DEBUG"     # DEBUG..CRITICAL


@dataclass
class AppConfig:
    """Typed configuration object built by `load_config`."""
    app: AppSection
    input: InputSection
    output: OutputSection
    logging: LoggingSection

    @property
    def run_id(self) -> str:
        """
        Return a stable run identifier for this process.
        Generated lazily when first accessed if not provided.
        """
        if not self.app.run_id:
            self.app.run_id = uuid.uuid4().hex[:12]
        return self.app.run_id


# ---------- Defaults ----------

_DEFAULT_FILES: Tuple[str, ...] = (
    "./proxysync.yml",
    os.path.expanduser("~/.config/proxysync/config.yml"),
    "/etc/proxysync/config.yml",
)

_DEFAULTS: Dict[str, Any] = {
    "app": {"run_id": None},
    "input": {"dir": "", "pattern": "*.json"},
    "output": {"format": "table"},
    "logging": {"base_dir": "logs", "console_level": "INFO", "file_level": "DEBUG"},
}

_FORMATS = ("table", "json")


# ---------- Utilities ----------

def _deep_merge(base: Dict[str, Any], ext: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Deep-merge for dicts: maps merge recursively, lists/scalars override.
    `ext` wins over `base`. Returns a new dict.
    """
    if not ext:
        return dict(base)
    out: Dict[str, Any] = dict(base)
    for k, v in ext.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _read_yaml_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping: {path}")
    return data


def _load_first_existing(files: Tuple[str, ...]) -> Dict[str, Any]:
    for p in files:
        if os.path.exists(p):
            return _read_yaml_file(p)
    return {}


def _load_env_file() -> None:
    # real environment variables win over .env entries
    env_path = find_dotenv(usecwd=True) or ""
    if env_path:
        load_dotenv(env_path, override=False)


def _env_to_dict(prefix: str = "PSYNC_") -> Dict[str, Any]:
    """
    Convert PSYNC_FOO__BAR=val to {"foo": {"bar": "val"}} (lowercased keys).
    """
    out: Dict[str, Any] = {}
    plen = len(prefix)
    for key, val in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[plen:].lower().split("__")
        cursor = out
        for part in path[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[path[-1]] = val
    return out


def _interpolate_env(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values like "${VAR}" with os.environ["VAR"] when present.
    """
    def repl(v: Any) -> Any:
        if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
            return os.environ.get(v[2:-1], "")
        return v

    def walk(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: walk(repl(v)) for k, v in obj.items()}
        if isinstance(obj, list):
            return [walk(x) for x in obj]
        return repl(obj)

    return walk(cfg)


def _normalize(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for section in ("app", "input", "output", "logging"):
        if not isinstance(cfg.get(section, {}), dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")
    out = dict(cfg)
    out["output"] = dict(cfg.get("output", {}))
    out["output"]["format"] = str(out["output"].get("format") or "table").strip().lower()
    out["logging"] = dict(cfg.get("logging", {}))
    for key in ("console_level", "file_level"):
        if key in out["logging"]:
            out["logging"][key] = str(out["logging"][key]).strip().upper()
    return out


def _validate(cfg: Dict[str, Any]) -> None:
    fmt = cfg.get("output", {}).get("format")
    if fmt not in _FORMATS:
        raise ValueError(
            f"Invalid output.format '{fmt}' (expected one of: {', '.join(_FORMATS)})"
        )


# ---------- Public API ----------

def load_config(
    cli_overrides: Optional[Dict[str, Any]] = None,
    files: Tuple[str, ...] = _DEFAULT_FILES,
    env_prefix: str = "PSYNC_",
    dotenv: bool = True,
) -> AppConfig:
    """
    Build an AppConfig from (in precedence order):
      1) CLI overrides
      2) Environment variables (prefix PSYNC_, nested via __), .env included
      3) YAML file (first existing)
      4) Built-in defaults

    Also performs ${ENV_VAR} interpolation and validation of the output format.
    """
    file_cfg = _load_first_existing(files)

    if dotenv:
        _load_env_file()
    env_cfg = _env_to_dict(env_prefix)

    # Combine: defaults <- file <- env <- cli
    merged = _deep_merge(_DEFAULTS, file_cfg)
    merged = _deep_merge(merged, env_cfg)
    merged = _deep_merge(merged, cli_overrides or {})

    merged = _interpolate_env(merged)
    merged = _normalize(merged)
    _validate(merged)

    return AppConfig(
        app=AppSection(**merged.get("app", {})),
        input=InputSection(**merged.get("input", {})),
        output=OutputSection(**merged.get("output", {})),
        logging=LoggingSection(**merged.get("logging", {})),
    )
