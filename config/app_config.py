"""
# config/app_config.py

Module Contract
- Purpose: Central configuration loader/normalizer. Reads YAML (optional), merges env overrides, sets defaults, and exposes typed constants for the feedback pipeline.
- Inputs:
  - Optional YAML (config.yaml) at several search paths
  - Environment variables (OPENAI_API_KEY, FEEDBACK_MODEL, FEEDBACK_GENERATIVE_ENABLED, FEEDBACK_API_BASE_URL, FEEDBACK_FALLBACK_SEED, FEEDBACK_LOG_LEVEL)
- Outputs:
  - Module-level constants used across the stack: generative backend knobs, prompt bounds, analysis model, fallback seed, logging.
- Key functions:
  - load_yaml_config(config_path) → dict: tolerant loader with variable resolution
  - ensure_config_defaults(config) → dict: fills missing sections and keys
  - apply_env_overrides(config, environ) → dict: environment wins over YAML
- Error handling:
  - Logs and falls back to safe defaults if files/vars are missing or malformed. Never raises.
"""
import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from utils.logging_utils import get_logger

logger = get_logger("config")

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "app": {
        "name": "pocket-garden-feedback",
        "log_level": "INFO",
        "log_file": None,
    },
    "generative": {
        "enabled": True,
        "model": "openai/gpt-4o-mini",
        "api_base_url": "https://openrouter.ai/api/v1",
        "app_title": "pocket-garden-feedback",
        "api_key": "",
        "request_timeout_s": 30.0,
        "generation_timeout_s": 20.0,
        "max_tokens": 220,
        "temperature": 0.8,
        "top_p": 0.95,
    },
    "prompt": {
        "entry_char_limit": 1200,
        "max_hints": 3,
        "hint_char_limit": 150,
    },
    "analysis": {
        "spacy_model": "en_core_web_sm",
        "max_keywords": 3,
    },
    "fallback": {
        "seed": None,
    },
}

# env var -> (section, key, caster)
ENV_OVERRIDES = {
    "OPENAI_API_KEY": ("generative", "api_key", str),
    "FEEDBACK_MODEL": ("generative", "model", str),
    "FEEDBACK_API_BASE_URL": ("generative", "api_base_url", str),
    "FEEDBACK_GENERATIVE_ENABLED": ("generative", "enabled", "bool"),
    "FEEDBACK_GENERATION_TIMEOUT_S": ("generative", "generation_timeout_s", float),
    "FEEDBACK_SPACY_MODEL": ("analysis", "spacy_model", str),
    "FEEDBACK_FALLBACK_SEED": ("fallback", "seed", int),
    "FEEDBACK_LOG_LEVEL": ("app", "log_level", str),
}

# --------------------------------------------------------------------
# Variable resolution
# --------------------------------------------------------------------

def resolve_vars(config: dict) -> dict:
    """
    Recursively resolves placeholder variables in the config like ${section.key}.
    """
    if not isinstance(config, dict):
        return config

    def get_value_by_path(path: str, conf_dict: dict):
        value = conf_dict
        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    def resolve_value(value, conf_dict):
        if isinstance(value, str):
            for match in re.findall(r"\$\{([^}]+)\}", value):
                replacement = get_value_by_path(match, conf_dict)
                if replacement is not None:
                    value = value.replace(f"${{{match}}}", str(replacement))
            return value
        elif isinstance(value, dict):
            return {k: resolve_value(v, conf_dict) for k, v in value.items()}
        elif isinstance(value, list):
            return [resolve_value(item, conf_dict) for item in value]
        return value

    # Multiple passes to resolve nested references
    for _ in range(5):
        prev = str(config)
        config = resolve_value(config, config)
        if str(config) == prev:
            break

    return config

# --------------------------------------------------------------------
# YAML loading
# --------------------------------------------------------------------

def load_yaml_config(config_path="config.yaml") -> dict:
    """Load configuration from YAML file with variable substitution."""
    paths_to_try = list(dict.fromkeys([
        Path(config_path),
        Path(__file__).parent / config_path,
        Path(__file__).parent.parent / config_path,
        Path.cwd() / config_path,
    ]))

    config: dict = {}
    for path in paths_to_try:
        if path.exists():
            logger.info(f"Loading config from: {path}")
            try:
                with open(path, "r", encoding="utf-8") as f:
                    config = yaml.safe_load(f)
                if not isinstance(config, dict):
                    logger.error("Config file is not a valid dictionary.")
                    config = {}
                break
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading config: {e}")
                config = {}

    if not config:
        logger.warning(f"Config file not found in any of: {paths_to_try}, using defaults.")

    return resolve_vars(config)

# --------------------------------------------------------------------
# Defaults and overrides
# --------------------------------------------------------------------

def ensure_config_defaults(config: dict) -> dict:
    """Ensure every section and key has a value after resolution."""
    for section, values in DEFAULTS.items():
        current = config.get(section)
        if not isinstance(current, dict):
            current = {}
            config[section] = current
        for key, default in values.items():
            if key not in current or (isinstance(current[key], str) and "${" in current[key]):
                current[key] = default
    return config


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def apply_env_overrides(config: dict, environ: Optional[Mapping[str, str]] = None) -> dict:
    """Environment variables take precedence over YAML values."""
    environ = os.environ if environ is None else environ
    for var, (section, key, caster) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = _parse_bool(raw) if caster == "bool" else caster(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {var}: {raw!r}")
            continue
        config.setdefault(section, {})[key] = value
    return config


def _as_float(value, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid numeric config value {value!r}, using {default}")
        return default


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer config value {value!r}, using {default}")
        return default

# --------------------------------------------------------------------
# Main Loading Sequence (only load once!)
# --------------------------------------------------------------------

config = load_yaml_config(os.getenv("FEEDBACK_CONFIG_FILE", "config.yaml"))
config = ensure_config_defaults(config)
config = apply_env_overrides(config)

_gen = config["generative"]
_prompt = config["prompt"]
_analysis = config["analysis"]

GENERATIVE_ENABLED: bool = bool(_gen["enabled"])
MODEL_NAME: str = str(_gen["model"] or "")
API_BASE_URL: str = str(_gen["api_base_url"])
APP_TITLE: str = str(_gen["app_title"] or "")
API_KEY: str = str(_gen["api_key"] or "")
REQUEST_TIMEOUT_S: float = _as_float(_gen["request_timeout_s"], 30.0)
GENERATION_TIMEOUT_S: float = _as_float(_gen["generation_timeout_s"], 20.0)
MAX_TOKENS: int = _as_int(_gen["max_tokens"], 220)
TEMPERATURE: float = _as_float(_gen["temperature"], 0.8)
TOP_P: float = _as_float(_gen["top_p"], 0.95)

ENTRY_CHAR_LIMIT: int = _as_int(_prompt["entry_char_limit"], 1200)
MAX_HINTS: int = _as_int(_prompt["max_hints"], 3)
HINT_CHAR_LIMIT: int = _as_int(_prompt["hint_char_limit"], 150)

SPACY_MODEL: str = str(_analysis["spacy_model"])
MAX_KEYWORDS: int = _as_int(_analysis["max_keywords"], 3)

_seed = config["fallback"]["seed"]
FALLBACK_SEED: Optional[int] = None if _seed is None else _as_int(_seed, 0)

LOG_LEVEL: str = str(config["app"]["log_level"]).upper()
LOG_FILE: Optional[str] = config["app"]["log_file"]

logger.debug(f"Config loaded: model={MODEL_NAME} enabled={GENERATIVE_ENABLED} base_url={API_BASE_URL}")
