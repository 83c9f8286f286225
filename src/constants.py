"""Constants used in the project."""

import logging
import os
from enum import Enum

import yaml

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    SCHEMA_ERROR = 3
    NOT_FOUND = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "SPMBRIDGE_LOG_LEVEL"
    ENV_CONFIG = "SPMBRIDGE_CONFIG"
    CONFIG_FILE_NAME = "spmbridge.yml"
    CONFIG_SEARCH_PATHS = [
        CONFIG_FILE_NAME,
        os.path.join("~", ".config", "spmbridge", CONFIG_FILE_NAME),
    ]

    # Label conventions
    OBJC_LABEL_SUFFIX = "_objc"
    PRODUCT_KEY_SEPARATOR = "|"
    REPO_NAME_PREFIX = "@"

    # Resolver defaults, overridable from YAML config or the CLI
    PREFERRED_REPO_NAME = None
    RESTRICT_TO_REPO_NAMES = []


def _load_yaml_config(path=None):
    """Load the YAML configuration file.

    An explicit ``path`` must exist. Otherwise ``SPMBRIDGE_CONFIG`` and then
    the default search paths are tried; a missing default file yields ``{}``.

    Returns:
        dict: Parsed configuration (empty when nothing was found).
    """
    candidates = []
    if path:
        candidates.append(path)
    else:
        env_path = os.environ.get(Constants.ENV_CONFIG)
        if env_path:
            candidates.append(env_path)
        candidates.extend(Constants.CONFIG_SEARCH_PATHS)

    for candidate in candidates:
        full = os.path.expanduser(candidate)
        if not os.path.isfile(full):
            if path:
                raise FileNotFoundError(full)
            continue
        with open(full, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level is not a mapping", full)
            return {}
        logger.debug("Loaded config from %s", full)
        return data
    return {}
