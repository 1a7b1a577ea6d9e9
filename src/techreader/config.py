from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .tools.search import DEFAULT_GEMINI_MODEL

# Gemini key for grounding-search-gemini; a value in the config file wins.
_DEFAULT_API_KEY = os.environ.get("GOOGLE_GENAI_API_KEY", "")

CONFIG_PATH = Path(
    os.environ.get("TECHREADER_CONFIG", str(Path.home() / ".config" / "techreader" / "config.yml"))
)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class AppConfig:
    history_limit: int = 10
    history_path: str = ""               # empty = discover the default Chrome profile
    snapshot_dir: str = ""               # empty = system temp directory
    snapshot_max_age_seconds: int = 3600  # startup sweep threshold, 0 disables
    feed_item_limit: int = 100
    feed_snippet_chars: int = 300
    feed_timeout: float = 20.0
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_key: str = ""             # empty = GOOGLE_GENAI_API_KEY
    http_host: str = "127.0.0.1"
    http_port: int = 3000
    log_level: str = "INFO"
    config_version: int = 1


def _positive_int(value: Any, default: int, *, minimum: int = 1, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    value = int(value)
    if value < minimum or (maximum is not None and value > maximum):
        return default
    return value


def _validate(cfg: dict[str, Any]) -> dict[str, Any]:
    defaults = AppConfig().__dict__.copy()
    merged = {**defaults, **{k: v for k, v in cfg.items() if k in defaults}}
    merged["history_limit"] = _positive_int(merged.get("history_limit"), defaults["history_limit"])
    for key in ("history_path", "snapshot_dir"):
        merged[key] = merged[key].strip() if isinstance(merged.get(key), str) else defaults[key]
    merged["snapshot_max_age_seconds"] = _positive_int(
        merged.get("snapshot_max_age_seconds"), defaults["snapshot_max_age_seconds"], minimum=0
    )
    merged["feed_item_limit"] = _positive_int(merged.get("feed_item_limit"), defaults["feed_item_limit"])
    merged["feed_snippet_chars"] = _positive_int(merged.get("feed_snippet_chars"), defaults["feed_snippet_chars"])
    raw_ft = merged.get("feed_timeout")
    merged["feed_timeout"] = (
        float(raw_ft)
        if isinstance(raw_ft, (int, float)) and not isinstance(raw_ft, bool) and float(raw_ft) > 0
        else defaults["feed_timeout"]
    )
    if not isinstance(merged.get("gemini_model"), str) or not merged["gemini_model"].strip():
        merged["gemini_model"] = defaults["gemini_model"]
    # An empty key in the file falls back to the environment.
    if not isinstance(merged.get("gemini_api_key"), str) or not merged["gemini_api_key"].strip():
        merged["gemini_api_key"] = _DEFAULT_API_KEY
    if not isinstance(merged.get("http_host"), str) or not merged["http_host"].strip():
        merged["http_host"] = defaults["http_host"]
    merged["http_port"] = _positive_int(merged.get("http_port"), defaults["http_port"], maximum=65535)
    level = str(merged.get("log_level", "")).upper()
    merged["log_level"] = level if level in _LOG_LEVELS else defaults["log_level"]
    merged["config_version"] = defaults["config_version"]
    return merged


def _for_disk(cfg: dict[str, Any]) -> dict[str, Any]:
    # Never write a key that only came from the environment.
    if cfg.get("gemini_api_key") == _DEFAULT_API_KEY:
        return {**cfg, "gemini_api_key": ""}
    return cfg


def load_config(path: Path = CONFIG_PATH) -> dict[str, Any]:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        cfg = _validate({})
        save_config(cfg, path)
        return cfg

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    cfg = _validate(raw if isinstance(raw, dict) else {})
    if _for_disk(cfg) != raw:
        save_config(cfg, path)
    return cfg


def save_config(cfg: dict[str, Any], path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    validated = _for_disk(_validate(cfg))
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(yaml.safe_dump(validated, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)


def setup_logging(level: str = "INFO") -> None:
    # stdout carries the stdio protocol, so logs always go to stderr.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
