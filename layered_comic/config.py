"""
Layered Comic — Configuration.

The API credential comes from the environment (.env is loaded by the entry
point) or from user-entered settings saved in a YAML file. Clients receive
it as an explicit GenerationContext; get_default_context() is the narrow
process-wide fallback used at the boundary.

A credential change racing with an in-flight request may be seen by that
request or not. Either is fine.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

HF_INFERENCE_BASE = "https://api-inference.huggingface.co/models"

# Checked in order; the second is the original web build's variable name
API_KEY_ENV_VARS = ("HUGGINGFACE_API_KEY", "VITE_HUGGINGFACE_API_KEY")

SETTINGS_PATH = "data/settings.yaml"

# Seconds
IMAGE_TIMEOUT = 30.0
SCRIPT_TIMEOUT = 15.0


@dataclass(frozen=True)
class GenerationContext:
    """Everything a generation request needs from configuration."""
    api_token: str = ""
    base_url: str = HF_INFERENCE_BASE
    image_timeout: float = IMAGE_TIMEOUT
    script_timeout: float = SCRIPT_TIMEOUT

    @property
    def has_credential(self) -> bool:
        return bool(self.api_token.strip())


class SettingsStore:
    """User-entered settings persisted as YAML."""

    def __init__(self, path: str = SETTINGS_PATH):
        self.path = Path(path)

    def load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Could not read settings {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings {self.path}: not a mapping")
            return {}
        return data

    def get_api_key(self) -> str:
        value = self.load().get("huggingface_api_key", "")
        return value if isinstance(value, str) else ""

    def save_api_key(self, api_key: str):
        data = self.load()
        data["huggingface_api_key"] = api_key
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        logger.info(f"API key saved to {self.path}")


def resolve_api_token(
    environ: Optional[dict] = None,
    settings: Optional[SettingsStore] = None,
) -> str:
    """Environment value if set, otherwise the user-entered one, otherwise ''."""
    environ = os.environ if environ is None else environ
    for name in API_KEY_ENV_VARS:
        value = environ.get(name, "").strip()
        if value:
            return value
    if settings is not None:
        return settings.get_api_key().strip()
    return ""


def load_context(
    environ: Optional[dict] = None,
    settings: Optional[SettingsStore] = None,
) -> GenerationContext:
    environ = os.environ if environ is None else environ
    return GenerationContext(
        api_token=resolve_api_token(environ, settings),
        base_url=environ.get("HUGGINGFACE_API_BASE", HF_INFERENCE_BASE),
    )


# ============================================================
# Process-wide default
# ============================================================

_default_context: Optional[GenerationContext] = None


def set_default_context(context: GenerationContext):
    global _default_context
    _default_context = context


def set_default_api_token(api_token: str):
    """Settings-screen hook: swap the credential, keep everything else."""
    set_default_context(replace(get_default_context(), api_token=api_token))


def get_default_context() -> GenerationContext:
    """The configured context, built from the environment on first use."""
    global _default_context
    if _default_context is None:
        _default_context = load_context()
    return _default_context


def reset_default_context():
    global _default_context
    _default_context = None
