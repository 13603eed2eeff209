"""
Parser settings.

Resolution order, later wins:
1. Defaults
2. YAML file ($AGENTLOG_CONFIG, or an explicit path)
3. Environment variables (GH_AW_MAX_TURNS, AGENTLOG_MAX_SUMMARY_BYTES,
   AGENTLOG_MAX_TOOL_OUTPUT_LENGTH)
4. CLI flags, merged by the caller and validated again

Example agentlog.yaml:

    max_summary_bytes: 512000
    max_tool_output_length: 400
    max_turns: 30
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from agentlog.budget import MAX_STEP_SUMMARY_SIZE
from agentlog.tool_format import MAX_TOOL_OUTPUT_LENGTH

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "AGENTLOG_CONFIG"

# Environment variable -> settings field
ENV_OVERRIDES: dict[str, str] = {
    "GH_AW_MAX_TURNS": "max_turns",
    "AGENTLOG_MAX_SUMMARY_BYTES": "max_summary_bytes",
    "AGENTLOG_MAX_TOOL_OUTPUT_LENGTH": "max_tool_output_length",
}


class ParserSettings(BaseModel):
    """Tunables for one parse."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    max_summary_bytes: int = Field(default=MAX_STEP_SUMMARY_SIZE, gt=0)
    max_tool_output_length: int = Field(default=MAX_TOOL_OUTPUT_LENGTH, gt=0)
    max_turns: int | None = Field(default=None, gt=0)


def load_config_file(config_path: Path) -> dict[str, Any]:
    """
    Load settings from a YAML file.

    Returns:
        Settings dict, or empty dict if the file is missing or unusable.
    """
    if not config_path.exists():
        logger.debug(f"No config file at {config_path}")
        return {}

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring config file {config_path}: {type(e).__name__}: {e}")
        return {}

    if not isinstance(config, dict):
        logger.warning(f"Ignoring config file {config_path}: top level is not a mapping")
        return {}
    return config


def _env_overrides(environ: Mapping[str, str]) -> dict[str, int]:
    overrides: dict[str, int] = {}
    for env_var, field_name in ENV_OVERRIDES.items():
        raw = environ.get(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[field_name] = int(raw.strip())
        except ValueError:
            logger.warning(f"Ignoring {env_var}={raw!r}: not an integer")
    return overrides


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ParserSettings:
    """Resolve settings from file and environment.

    Args:
        config_path: YAML file to read; defaults to $AGENTLOG_CONFIG when set
        environ: Environment mapping; defaults to os.environ

    Returns:
        ParserSettings

    Raises:
        pydantic.ValidationError: If the combined values are out of range
    """
    environ = os.environ if environ is None else environ

    if config_path is None and environ.get(CONFIG_PATH_ENV):
        config_path = environ[CONFIG_PATH_ENV]

    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(load_config_file(Path(config_path)))
    values.update(_env_overrides(environ))

    return ParserSettings.model_validate(values)
