"""Configuration layering for resolver defaults and logging.

Precedence, highest first: CLI flags, environment variables, the YAML
config file, built-in ``Constants`` defaults. Invalid config values are
logged and ignored so a stale config file never breaks the CLI.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from constants import Constants, _load_yaml_config

logger = logging.getLogger(__name__)

ENV_PREFERRED_REPO = "SPMBRIDGE_PREFERRED_REPO"
ENV_RESTRICT_REPOS = "SPMBRIDGE_RESTRICT_REPOS"


def load_config(args) -> Dict[str, Any]:
    """Load the YAML config named by ``--config`` or found in the default locations."""
    return _load_yaml_config(getattr(args, "CONFIG", None))


def _split_repo_names(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def apply_resolve_overrides(args, config: Dict[str, Any]) -> None:
    """Apply resolver defaults from config, environment and CLI to ``Constants``."""
    section = config.get("resolve") or {}
    if not isinstance(section, dict):
        logger.warning("Ignoring 'resolve' config section: expected a mapping")
        section = {}

    preferred = section.get("preferred_repo_name")
    if preferred is not None:
        if isinstance(preferred, str):
            Constants.PREFERRED_REPO_NAME = preferred  # type: ignore[assignment]
        else:
            logger.warning("Ignoring resolve.preferred_repo_name: expected a string")
    restrict = section.get("restrict_to_repo_names")
    if restrict is not None:
        if isinstance(restrict, list) and all(isinstance(r, str) for r in restrict):
            Constants.RESTRICT_TO_REPO_NAMES = list(restrict)
        else:
            logger.warning("Ignoring resolve.restrict_to_repo_names: expected a list of strings")

    env_preferred = os.environ.get(ENV_PREFERRED_REPO)
    if env_preferred and env_preferred.strip():
        Constants.PREFERRED_REPO_NAME = env_preferred.strip()  # type: ignore[assignment]
    env_restrict = os.environ.get(ENV_RESTRICT_REPOS)
    if env_restrict and env_restrict.strip():
        Constants.RESTRICT_TO_REPO_NAMES = _split_repo_names(env_restrict)

    if getattr(args, "PREFER", None):
        Constants.PREFERRED_REPO_NAME = args.PREFER  # type: ignore[assignment]
    if getattr(args, "RESTRICT", None):
        Constants.RESTRICT_TO_REPO_NAMES = list(args.RESTRICT)


def resolve_log_level(args, config: Dict[str, Any]) -> Optional[str]:
    """Pick the log level: ``--loglevel``, then the environment, then config."""
    if getattr(args, "LOG_LEVEL", None):
        return str(args.LOG_LEVEL).upper()
    if os.environ.get(Constants.ENV_LOG_LEVEL):
        return os.environ[Constants.ENV_LOG_LEVEL].upper()
    section = config.get("logging") or {}
    if isinstance(section, dict) and isinstance(section.get("level"), str):
        return section["level"].upper()
    return None
