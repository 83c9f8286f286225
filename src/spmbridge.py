"""spmbridge - Map a Swift package dependency graph onto Bazel labels.

    Returns:
        int: Exit code
"""
import json
import logging
import sys

import yaml

from args import parse_args
from cli_config import apply_resolve_overrides, load_config, resolve_log_level
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.schema_validate import SchemaError
from constants import Constants, ExitCodes
from deps_index.export import new_index_document
from deps_index.index import DepsIndex
from deps_index.resolver import (
    DepsIndexContext,
    resolve_module_labels_with_ctx,
    resolve_product_labels_with_ctx,
)
from manifest.merger import merge_files

logger = logging.getLogger(__name__)


def _setup_logging(args, config):
    configure_logging(resolve_log_level(args, config))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _write_output(args, payload):
    text = json.dumps(payload, indent=2)
    if getattr(args, "OUTPUT", None):
        with open(args.OUTPUT, "w", encoding="utf-8") as fh:
            fh.write(text + "\n")
        logger.info("Wrote %s", args.OUTPUT)
    else:
        sys.stdout.write(text + "\n")


def _load_index(path):
    with open(path, "r", encoding="utf-8") as fh:
        return DepsIndex.from_json(fh.read())


def _parse_package_arg(value):
    """Split ``REPO:IDENTITY:DUMP:DESCRIBE``; only the DESCRIBE path may contain colons."""
    parts = value.split(":", 3)
    if len(parts) != 4 or not all(parts):
        raise SchemaError(f"Invalid --package value {value!r}; expected REPO:IDENTITY:DUMP:DESCRIBE")
    return parts


def run_merge(args):
    """Merge the two manifests and print the package model."""
    pkg_info = merge_files(args.DUMP, args.DESCRIBE)
    _write_output(args, pkg_info.to_dict())
    return ExitCodes.SUCCESS


def run_index(args):
    """Merge every --package and emit the combined dependency index."""
    packages = []
    for value in args.PACKAGES:
        repo_name, identity, dump_path, desc_path = _parse_package_arg(value)
        packages.append((repo_name, identity, merge_files(dump_path, desc_path)))
    doc = new_index_document(packages)
    # Round-trip through DepsIndex so the emitted document is known to load.
    DepsIndex.from_dict(doc)
    _write_output(args, doc)
    return ExitCodes.SUCCESS


def run_resolve_module(args):
    """Resolve one module name using the configured repository preferences."""
    ctx = DepsIndexContext.new(
        _load_index(args.INDEX),
        preferred_repo_name=Constants.PREFERRED_REPO_NAME,
        restrict_to_repo_names=Constants.RESTRICT_TO_REPO_NAMES,
    )
    labels = resolve_module_labels_with_ctx(ctx, args.MODULE_NAME)
    _write_output(args, [str(lbl) for lbl in labels])
    if not labels:
        logger.warning("No module found for %s", args.MODULE_NAME)
        return ExitCodes.NOT_FOUND
    return ExitCodes.SUCCESS


def run_resolve_product(args):
    """Resolve a product of a dependency to all of its target labels."""
    ctx = DepsIndexContext.new(_load_index(args.INDEX))
    labels = resolve_product_labels_with_ctx(ctx, args.IDENTITY, args.PRODUCT_NAME)
    _write_output(args, [str(lbl) for lbl in labels])
    if not labels:
        logger.warning("No product %s found for %s", args.PRODUCT_NAME, args.IDENTITY)
        return ExitCodes.NOT_FOUND
    return ExitCodes.SUCCESS


_COMMANDS = {
    "merge": run_merge,
    "index": run_index,
    "resolve-module": run_resolve_module,
    "resolve-product": run_resolve_product,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)

    try:
        config = load_config(args)
    except (OSError, yaml.YAMLError) as e:
        configure_logging(getattr(args, "LOG_LEVEL", None))
        logger.error("Unable to load config: %s", e)
        return ExitCodes.FILE_ERROR.value

    _setup_logging(args, config)
    apply_resolve_overrides(args, config)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    try:
        code = _COMMANDS[args.COMMAND](args)
    except SchemaError as e:
        logger.error("Schema error: %s", e)
        return ExitCodes.SCHEMA_ERROR.value
    except OSError as e:
        logger.error("File error: %s, aborting", e)
        return ExitCodes.FILE_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action=args.COMMAND,
                outcome=code.name.lower(),
            )
        )
    return code.value


if __name__ == "__main__":
    sys.exit(main())
