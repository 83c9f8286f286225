"""Normalized Swift package model built from the dump and describe manifests."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional, Tuple

from versioning.models import DependencyRequirement


class DependencyType(Enum):
    """Kinds of package dependency declared in a manifest."""
    SOURCE_CONTROL = "sourceControl"
    FILE_SYSTEM = "fileSystem"
    REGISTRY = "registry"


class ProductTypeTag(Enum):
    """Product kinds SPM can declare."""
    EXECUTABLE = "executable"
    LIBRARY = "library"
    PLUGIN = "plugin"
    SNIPPET = "snippet"
    TEST = "test"
    MACRO = "macro"


class LibraryKind(Enum):
    """Linkage of a library product."""
    AUTOMATIC = "automatic"
    STATIC = "static"
    DYNAMIC = "dynamic"


class TargetType(Enum):
    """Target kinds after normalizing the two manifest vocabularies."""
    EXECUTABLE = "executable"
    LIBRARY = "library"
    TEST = "test"
    SYSTEM = "system"
    BINARY = "binary"
    PLUGIN = "plugin"
    MACRO = "macro"


@dataclass(frozen=True)
class Platform:
    """Minimum platform version supported by the package."""
    name: str
    version: str


@dataclass(frozen=True)
class Dependency:
    """A package dependency keyed by its identity."""
    identity: str
    type: DependencyType
    url: Optional[str] = None
    path: Optional[str] = None
    requirement: Optional[DependencyRequirement] = None


@dataclass(frozen=True)
class ProductType:
    """Product kind; ``library_kind`` is only set for library products."""
    tag: ProductTypeTag
    library_kind: Optional[LibraryKind] = None

    @property
    def is_executable(self) -> bool:
        return self.tag == ProductTypeTag.EXECUTABLE

    @property
    def is_library(self) -> bool:
        return self.tag == ProductTypeTag.LIBRARY


@dataclass(frozen=True)
class Product:
    """A named product and the targets that make it up."""
    name: str
    targets: Tuple[str, ...]
    type: ProductType


@dataclass(frozen=True)
class ProductReference:
    """Reference to a product; a missing ``dep_identity`` means the local package."""
    product_name: str
    dep_identity: Optional[str] = None
    condition_platforms: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetReference:
    """Reference to a target of the same package."""
    target_name: str
    condition_platforms: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetDependency:
    """Tagged target dependency: exactly one of the three fields is set.

    ``by_name`` is SPM's name lookup (target or product), ``target`` is an
    explicit ``.target(name:)`` declaration.
    """
    product: Optional[ProductReference] = None
    by_name: Optional[TargetReference] = None
    target: Optional[TargetReference] = None

    def __post_init__(self):
        set_fields = [f for f in (self.product, self.by_name, self.target) if f is not None]
        if len(set_fields) != 1:
            raise ValueError(
                "A target dependency must have exactly one of product, by_name or target."
            )


@dataclass(frozen=True)
class Target:
    """A target with the resolved metadata of the describe manifest."""
    name: str
    type: TargetType
    c99name: str
    module_type: str
    path: str
    sources: Tuple[str, ...] = ()
    dependencies: Tuple[TargetDependency, ...] = ()
    exclude: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageInfo:
    """The merged, canonical description of a Swift package."""
    name: str
    path: str
    tools_version: str
    platforms: Tuple[Platform, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    products: Tuple[Product, ...] = ()
    targets: Tuple[Target, ...] = ()

    def get_target(self, name: str) -> Optional[Target]:
        """Return the target named ``name`` or None."""
        for target in self.targets:
            if target.name == name:
                return target
        return None

    def get_product(self, name: str) -> Optional[Product]:
        """Return the product named ``name`` or None."""
        for product in self.products:
            if product.name == name:
                return product
        return None

    def to_dict(self) -> dict:
        """Return a JSON-compatible dict, enums replaced by their values."""
        return _jsonable(asdict(self))


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
