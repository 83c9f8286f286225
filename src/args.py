"""Argument parsing functionality for spmbridge."""

import argparse


def _add_common_args(parser):
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the JSON result to this file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)


def build_parser():
    """Build the argument parser with one sub-command per operation."""
    parser = argparse.ArgumentParser(
        prog="spmbridge",
        description=(
            "spmbridge - Map Swift package manifests onto Bazel labels"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    merge = subparsers.add_parser(
        "merge", help="Merge dump-package and describe JSON into one package model")
    merge.add_argument("--dump",
                       dest="DUMP",
                       help="Output of `swift package dump-package`",
                       required=True)
    merge.add_argument("--describe",
                       dest="DESCRIBE",
                       help="Output of `swift package describe --type json`",
                       required=True)
    _add_common_args(merge)

    index = subparsers.add_parser(
        "index", help="Build a combined dependency index from merged packages")
    index.add_argument("-p", "--package",
                       dest="PACKAGES",
                       help="REPO:IDENTITY:DUMP_JSON:DESCRIBE_JSON, may be repeated",
                       action="append",
                       required=True)
    _add_common_args(index)

    module = subparsers.add_parser(
        "resolve-module", help="Resolve a module name to a Bazel label")
    module.add_argument("--index",
                        dest="INDEX",
                        help="Combined dependency index JSON",
                        required=True)
    module.add_argument("MODULE_NAME", help="Module name or c99name")
    module.add_argument("--prefer",
                        dest="PREFER",
                        help="Prefer a module provided by this repository",
                        action="store",
                        type=str)
    module.add_argument("--restrict",
                        dest="RESTRICT",
                        help="Only consider this repository, may be repeated",
                        action="append",
                        default=[])
    _add_common_args(module)

    product = subparsers.add_parser(
        "resolve-product", help="Resolve a product to its Bazel labels")
    product.add_argument("--index",
                         dest="INDEX",
                         help="Combined dependency index JSON",
                         required=True)
    product.add_argument("IDENTITY", help="Dependency identity")
    product.add_argument("PRODUCT_NAME", help="Product name")
    _add_common_args(product)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
