"""Resolve module names and products to Bazel labels."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from bazel.labels import BazelLabel, normalize_repo_name, objc_label_name
from common.logging_utils import extra_context, is_debug_enabled
from deps_index.index import DepsIndex, ProductEntry, SourceType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepsIndexContext:
    """A dependency index together with the caller's lookup criteria.

    Attributes:
        deps_index: The index to query.
        preferred_repo_name: If a target in this repository provides the
            module, prefer it over any other match.
        restrict_to_repo_names: If non-empty, only labels from these
            repositories are considered.
    """
    deps_index: DepsIndex
    preferred_repo_name: Optional[str] = None
    restrict_to_repo_names: FrozenSet[str] = frozenset()

    @classmethod
    def new(
        cls,
        deps_index: DepsIndex,
        preferred_repo_name: Optional[str] = None,
        restrict_to_repo_names: Iterable[str] = (),
    ) -> "DepsIndexContext":
        return cls(
            deps_index=deps_index,
            preferred_repo_name=preferred_repo_name,
            restrict_to_repo_names=frozenset(restrict_to_repo_names),
        )


def resolve_module_labels(
    deps_index: DepsIndex,
    module_name: str,
    preferred_repo_name: Optional[str] = None,
    restrict_to_repo_names: Iterable[str] = (),
) -> List[BazelLabel]:
    """Find the Bazel label that provides the specified module.

    At most one label is returned. When several modules share the name, a
    module from ``preferred_repo_name`` wins; otherwise the first candidate
    (in index insertion order) among ``restrict_to_repo_names`` is used.

    Args:
        deps_index: The index to query.
        module_name: The module name or c99name.
        preferred_repo_name: Optional. Repository to prefer.
        restrict_to_repo_names: Optional. Repositories to restrict the match to.

    Returns:
        A list with zero or one ``BazelLabel``.
    """
    modules = deps_index.find_modules(module_name)
    if not modules:
        return []
    labels = [m.label for m in modules]

    if preferred_repo_name is not None:
        preferred_repo_name = normalize_repo_name(preferred_repo_name)
        module = next(
            (m for m in modules if m.label.repo_key() == preferred_repo_name),
            None,
        )
        if module is not None:
            # Objective-C modules cannot @import the Swift module alias target
            # of another Objective-C module, so point at the native target.
            if module.src_type == SourceType.OBJC:
                return [
                    BazelLabel(
                        name=objc_label_name(module.label.name),
                        package=module.label.package,
                        repository_name=module.label.repository_name,
                    )
                ]
            return [module.label]

    restrict = {normalize_repo_name(rn) for rn in restrict_to_repo_names}
    if restrict:
        labels = [lbl for lbl in labels if lbl.repo_key() in restrict]

    if is_debug_enabled(logger) and len(labels) > 1:
        logger.debug(
            "Multiple labels provide module %s; using the first",
            module_name,
            extra=extra_context(
                event="decision",
                component="resolver",
                action="resolve_module_labels",
                outcome="ambiguous",
                count=len(labels),
            ),
        )

    if not labels:
        return []
    return [labels[0]]


def resolve_module_labels_with_ctx(ctx: DepsIndexContext, module_name: str) -> List[BazelLabel]:
    """Find the Bazel label that provides the module using a context's criteria."""
    return resolve_module_labels(
        deps_index=ctx.deps_index,
        module_name=module_name,
        preferred_repo_name=ctx.preferred_repo_name,
        restrict_to_repo_names=ctx.restrict_to_repo_names,
    )


def find_product(deps_index: DepsIndex, identity: str, name: str) -> Optional[ProductEntry]:
    """Retrieve the product for the dependency identity and product name.

    Returns:
        The ``ProductEntry`` or None if not found.
    """
    return deps_index.find_product(identity, name)


def resolve_product_labels(deps_index: DepsIndex, identity: str, name: str) -> List[BazelLabel]:
    """Return the Bazel labels that represent the specified product.

    Every target label of the product is returned in its original order; an
    unknown product yields an empty list.
    """
    product = find_product(deps_index, identity, name)
    if product is None:
        return []
    return list(product.target_labels)


def resolve_product_labels_with_ctx(ctx: DepsIndexContext, identity: str, name: str) -> List[BazelLabel]:
    """Return the Bazel labels that represent the specified product using a context."""
    return resolve_product_labels(ctx.deps_index, identity, name)
