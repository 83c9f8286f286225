"""Module and product indexes built from a combined dependency index document.

The combined document has the shape::

    {
        "modules": [{"name", "c99name", "src_type", "label"}, ...],
        "products": [{"identity", "name", "type", "target_labels": [...]}, ...]
    }

Modules are indexed under their name and, when it differs, their c99name.
Several repositories may provide a module with the same name, so each key
maps to a tuple of entries in insertion order. Products are indexed under
``identity.lower() + "|" + name``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from bazel.labels import BazelLabel
from common.logging_utils import extra_context, is_debug_enabled
from common.schema_validate import DEPS_INDEX_SCHEMA, SchemaError, validate_input
from constants import Constants

logger = logging.getLogger(__name__)


class SourceType(Enum):
    """Source language of a module."""
    UNKNOWN = "unknown"
    SWIFT = "swift"
    CLANG = "clang"
    OBJC = "objc"
    BINARY = "binary"

    @classmethod
    def parse(cls, value: str) -> "SourceType":
        """Return the member for ``value``.

        Raises:
            SchemaError: If ``value`` is not a recognized source type.
        """
        try:
            return cls(value)
        except ValueError as exc:
            raise SchemaError(f"Unrecognized source type. type: {value}") from exc


@dataclass(frozen=True)
class ModuleEntry:
    """One compilation unit and the label that builds it."""
    name: str
    c99name: str
    src_type: SourceType
    label: BazelLabel

    @classmethod
    def from_dict(cls, mod_dict: Dict[str, Any]) -> "ModuleEntry":
        return cls(
            name=mod_dict["name"],
            c99name=mod_dict["c99name"],
            src_type=SourceType.parse(mod_dict.get("src_type", SourceType.UNKNOWN.value)),
            label=BazelLabel.parse(mod_dict["label"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "c99name": self.c99name,
            "src_type": self.src_type.value,
            "label": str(self.label),
        }


@dataclass(frozen=True)
class ProductEntry:
    """A product of a dependency and the labels of the targets realizing it."""
    identity: str
    name: str
    type: str
    target_labels: Tuple[BazelLabel, ...]

    @classmethod
    def from_dict(cls, prd_dict: Dict[str, Any]) -> "ProductEntry":
        return cls(
            identity=prd_dict["identity"],
            name=prd_dict["name"],
            type=prd_dict["type"],
            target_labels=tuple(BazelLabel.parse(lbl) for lbl in prd_dict["target_labels"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "name": self.name,
            "type": self.type,
            "target_labels": [str(lbl) for lbl in self.target_labels],
        }


def product_index_key(identity: str, name: str) -> str:
    """Composite product key; case-insensitive on identity only."""
    return identity.lower() + Constants.PRODUCT_KEY_SEPARATOR + name


class DepsIndex:
    """Read-only lookup tables for modules and products.

    Build one with ``from_json``, ``from_dict`` or ``new``; the tables are
    not mutated afterwards.
    """

    def __init__(
        self,
        modules: Mapping[str, Tuple[ModuleEntry, ...]],
        products: Mapping[str, ProductEntry],
    ):
        self._modules = MappingProxyType(dict(modules))
        self._products = MappingProxyType(dict(products))

    @property
    def modules(self) -> Mapping[str, Tuple[ModuleEntry, ...]]:
        return self._modules

    @property
    def products(self) -> Mapping[str, ProductEntry]:
        return self._products

    @classmethod
    def new(
        cls,
        modules: Iterable[ModuleEntry] = (),
        products: Iterable[ProductEntry] = (),
    ) -> "DepsIndex":
        """Aggregate module and product entries into an index."""
        mi: Dict[str, List[ModuleEntry]] = {}
        pi: Dict[str, ProductEntry] = {}

        for mod in modules:
            mi.setdefault(mod.name, []).append(mod)
            if mod.name != mod.c99name:
                mi.setdefault(mod.c99name, []).append(mod)

        for prd in products:
            key = product_index_key(prd.identity, prd.name)
            if key in pi:
                # Last write wins; the earlier entry is dropped.
                logger.warning(
                    "Duplicate product %r for identity %r; keeping the last definition",
                    prd.name,
                    prd.identity,
                )
            pi[key] = prd

        return cls(
            modules={key: tuple(entries) for key, entries in mi.items()},
            products=pi,
        )

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "DepsIndex":
        """Build an index from a decoded combined index document.

        Raises:
            SchemaError: If the document or one of its entries is malformed.
        """
        validate_input(DEPS_INDEX_SCHEMA, doc, what="dependency index")
        modules = [ModuleEntry.from_dict(m) for m in doc["modules"]]
        products = [ProductEntry.from_dict(p) for p in doc["products"]]
        index = cls.new(modules=modules, products=products)
        if is_debug_enabled(logger):
            logger.debug(
                "Built dependency index",
                extra=extra_context(
                    event="index_built",
                    component="deps_index",
                    action="from_dict",
                    module_count=len(modules),
                    product_count=len(index.products),
                ),
            )
        return index

    @classmethod
    def from_json(cls, json_str: str) -> "DepsIndex":
        """Build an index from a combined index JSON string."""
        try:
            doc = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise SchemaError(f"Invalid dependency index JSON: {exc}") from exc
        return cls.from_dict(doc)

    def find_modules(self, module_name: str) -> Tuple[ModuleEntry, ...]:
        """Return every module entry indexed under ``module_name``."""
        return self._modules.get(module_name, ())

    def find_product(self, identity: str, name: str) -> Optional[ProductEntry]:
        """Return the product entry for ``(identity, name)`` or None."""
        return self._products.get(product_index_key(identity, name))

    def to_dict(self) -> Dict[str, Any]:
        """Re-emit the combined document; each module appears once."""
        seen = set()
        modules = []
        for entries in self._modules.values():
            for mod in entries:
                if id(mod) in seen:
                    continue
                seen.add(id(mod))
                modules.append(mod.to_dict())
        return {
            "modules": modules,
            "products": [prd.to_dict() for prd in self._products.values()],
        }
