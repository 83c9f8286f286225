"""Flatten merged packages into a combined dependency index document."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from bazel.labels import label_from_target
from common.schema_validate import SchemaError
from deps_index.index import SourceType
from manifest.models import PackageInfo, Target, TargetType

logger = logging.getLogger(__name__)

_OBJC_SOURCE_SUFFIXES = (".m", ".mm")

_MODULE_TYPE_SRC_TYPES = {
    "SwiftTarget": SourceType.SWIFT,
    "ClangTarget": SourceType.CLANG,
    "BinaryTarget": SourceType.BINARY,
}


def src_type_for_target(target: Target) -> SourceType:
    """Derive the module source type from the describe ``module_type``.

    Clang targets with Objective-C sources are reported as ``objc``.
    """
    src_type = _MODULE_TYPE_SRC_TYPES.get(target.module_type, SourceType.UNKNOWN)
    if src_type == SourceType.CLANG and any(
        src.endswith(_OBJC_SOURCE_SUFFIXES) for src in target.sources
    ):
        return SourceType.OBJC
    return src_type


def new_index_document(packages: Iterable[Tuple[str, str, PackageInfo]]) -> Dict[str, Any]:
    """Build the combined index document for a set of packages.

    Args:
        packages: ``(repo_name, identity, package_info)`` triples. Modules are
            emitted in package order, then target order.

    Returns:
        dict: ``{"modules": [...], "products": [...]}``.

    Raises:
        SchemaError: If a product names a target the package does not have.
    """
    modules: List[Dict[str, Any]] = []
    products: List[Dict[str, Any]] = []

    for repo_name, identity, pkg_info in packages:
        labels = {}
        for target in pkg_info.targets:
            label = label_from_target(repo_name, target)
            labels[target.name] = label
            if target.type == TargetType.TEST:
                continue
            modules.append({
                "name": target.name,
                "c99name": target.c99name,
                "src_type": src_type_for_target(target).value,
                "label": str(label),
            })

        for product in pkg_info.products:
            target_labels = []
            for target_name in product.targets:
                if target_name not in labels:
                    raise SchemaError(
                        f"Product '{product.name}' of {identity} references unknown target '{target_name}'"
                    )
                target_labels.append(str(labels[target_name]))
            products.append({
                "identity": identity,
                "name": product.name,
                "type": product.type.tag.value,
                "target_labels": target_labels,
            })

        logger.debug("Indexed package %s from %s", identity, repo_name)

    return {"modules": modules, "products": products}
