"""Merge the SPM dump and describe manifests into a ``PackageInfo``.

``swift package dump-package`` keeps the manifest declarations (dependency
requirements, product type tags, the product/byName shape of target
dependencies) but has no resolved identifiers. ``swift package describe
--type json`` has the resolved identifiers (c99name, module type, source
files) but flattens target dependencies to name lists. Targets are joined
by name: dump targets drive the iteration and the output order, describe
targets are looked up in a name-keyed map.

Every malformed field raises ``SchemaError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.schema_validate import SchemaError
from manifest.models import (
    Dependency,
    DependencyType,
    LibraryKind,
    PackageInfo,
    Platform,
    Product,
    ProductReference,
    ProductType,
    ProductTypeTag,
    Target,
    TargetDependency,
    TargetReference,
    TargetType,
)
from versioning.models import DependencyRequirement, VersionRange


logger = logging.getLogger(__name__)

# Dump and describe spell some target types differently.
_TARGET_TYPE_ALIASES = {
    "regular": TargetType.LIBRARY,
    "system-target": TargetType.SYSTEM,
}


def _require(obj: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(obj, dict):
        raise SchemaError(f"Expected an object for {where}, got {type(obj).__name__}")
    if key not in obj or obj[key] is None:
        raise SchemaError(f"Missing required field '{key}' in {where}")
    return obj[key]


def _require_str(obj: Dict[str, Any], key: str, where: str) -> str:
    value = _require(obj, key, where)
    if not isinstance(value, str):
        raise SchemaError(f"Field '{key}' in {where} must be a string")
    return value


def _require_list(obj: Dict[str, Any], key: str, where: str) -> list:
    value = _require(obj, key, where)
    if not isinstance(value, list):
        raise SchemaError(f"Field '{key}' in {where} must be an array")
    return value


def _optional_list(obj: Dict[str, Any], key: str, where: str) -> Optional[list]:
    """Return the array at ``key``, or None when the key is absent or null."""
    if obj.get(key) is None:
        return None
    return _require_list(obj, key, where)


def _optional_str(obj: Dict[str, Any], key: str, where: str) -> Optional[str]:
    """Return the string at ``key``, or None when the key is absent or null."""
    if obj.get(key) is None:
        return None
    return _require_str(obj, key, where)


def _str_payload(payload: Any, where: str) -> str:
    value = _first(payload, where)
    if not isinstance(value, str):
        raise SchemaError(f"Expected a string for {where}")
    return value


def _str_list(values: list, where: str) -> Tuple[str, ...]:
    if not all(isinstance(v, str) for v in values):
        raise SchemaError(f"Expected an array of strings for {where}")
    return tuple(values)


def _unwrap(wrapper: Any, where: str) -> Tuple[str, Any]:
    """Unwrap a single-key ``{"<tag>": payload}`` object."""
    if not isinstance(wrapper, dict) or len(wrapper) != 1:
        raise SchemaError(f"Expected a single-key object for {where}")
    return next(iter(wrapper.items()))


def _first(payload: Any, where: str) -> Any:
    if not isinstance(payload, list) or not payload:
        raise SchemaError(f"Expected a non-empty array for {where}")
    return payload[0]


def _enum_value(enum_cls, value: Any, where: str, aliases: Optional[dict] = None):
    if aliases and value in aliases:
        return aliases[value]
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise SchemaError(f"Unrecognized {where}: {value!r}") from exc


def _parse_path(dump: Dict[str, Any], desc: Dict[str, Any]) -> str:
    package_kind = dump.get("packageKind")
    if package_kind is not None:
        _, payload = _unwrap(package_kind, "packageKind")
        path = _first(payload, "packageKind")
        if not isinstance(path, str):
            raise SchemaError("packageKind path must be a string")
        return path
    return _require_str(desc, "path", "describe manifest")


def _parse_tools_version(dump: Dict[str, Any], desc: Dict[str, Any]) -> str:
    tools_version = dump.get("toolsVersion")
    if tools_version is not None:
        return _require_str(tools_version, "_version", "toolsVersion")
    return _require_str(desc, "tools_version", "describe manifest")


def _parse_platforms(dump: Dict[str, Any], desc: Dict[str, Any]) -> Tuple[Platform, ...]:
    dump_platforms = _optional_list(dump, "platforms", "dump manifest")
    if dump_platforms is not None:
        return tuple(
            Platform(
                name=_require_str(p, "platformName", "dump platform"),
                version=_require_str(p, "version", "dump platform"),
            )
            for p in dump_platforms
        )
    desc_platforms = _optional_list(desc, "platforms", "describe manifest") or []
    return tuple(
        Platform(
            name=_require_str(p, "name", "describe platform"),
            version=_require_str(p, "version", "describe platform"),
        )
        for p in desc_platforms
    )


def _parse_requirement(
    req: Any, lower_key: str, upper_key: str, where: str
) -> Optional[DependencyRequirement]:
    if req is None:
        return None
    kind, payload = _unwrap(req, f"{where} requirement")
    if kind == "range":
        if not isinstance(payload, list):
            raise SchemaError(f"Requirement range in {where} must be an array")
        return DependencyRequirement.from_ranges(
            VersionRange(
                lower_bound=_require_str(r, lower_key, f"{where} range"),
                upper_bound=_require_str(r, upper_key, f"{where} range"),
            )
            for r in payload
        )
    if kind == "exact":
        if not isinstance(payload, list) or not payload:
            raise SchemaError(f"Requirement exact in {where} must be a non-empty array")
        return DependencyRequirement.from_exact(_str_list(payload, f"{where} exact"))
    if kind == "revision":
        return DependencyRequirement.from_revision(_str_payload(payload, f"{where} revision"))
    if kind == "branch":
        return DependencyRequirement.from_branch(_str_payload(payload, f"{where} branch"))
    raise SchemaError(f"Unrecognized requirement kind in {where}: {kind!r}")


def _location_value(location: Any, where: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(url, path)`` from a source control ``location`` wrapper."""
    kind, payload = _unwrap(location, f"{where} location")
    value = _first(payload, f"{where} location")
    if isinstance(value, dict):
        # Newer tools versions wrap the URL: {"urlString": "..."}
        value = value.get("urlString")
    if not isinstance(value, str):
        raise SchemaError(f"Location in {where} must be a string")
    if kind == "remote":
        return value, None
    if kind == "local":
        return None, value
    raise SchemaError(f"Unrecognized location kind in {where}: {kind!r}")


def _parse_dump_dependency(wrapper: Any) -> Dependency:
    dep_type_str, payload = _unwrap(wrapper, "dump dependency")
    dep_type = _enum_value(DependencyType, dep_type_str, "dependency type")
    dep = _first(payload, f"{dep_type_str} dependency")
    identity = _require_str(dep, "identity", f"{dep_type_str} dependency")
    where = f"dependency '{identity}'"

    url = None
    path = None
    if dep_type == DependencyType.SOURCE_CONTROL:
        url, path = _location_value(_require(dep, "location", where), where)
    elif dep_type == DependencyType.FILE_SYSTEM:
        path = _require_str(dep, "path", where)

    return Dependency(
        identity=identity,
        type=dep_type,
        url=url,
        path=path,
        requirement=_parse_requirement(dep.get("requirement"), "lowerBound", "upperBound", where),
    )


def _parse_desc_dependency(dep: Dict[str, Any]) -> Dependency:
    identity = _require_str(dep, "identity", "describe dependency")
    where = f"dependency '{identity}'"
    return Dependency(
        identity=identity,
        type=_enum_value(DependencyType, _require_str(dep, "type", where), "dependency type"),
        url=_optional_str(dep, "url", where),
        path=_optional_str(dep, "path", where),
        requirement=_parse_requirement(dep.get("requirement"), "lower_bound", "upper_bound", where),
    )


def _parse_dependencies(dump: Dict[str, Any], desc: Dict[str, Any]) -> Tuple[Dependency, ...]:
    dump_deps = _optional_list(dump, "dependencies", "dump manifest")
    if dump_deps is not None:
        return tuple(_parse_dump_dependency(d) for d in dump_deps)
    desc_deps = _optional_list(desc, "dependencies", "describe manifest") or []
    return tuple(_parse_desc_dependency(d) for d in desc_deps)


def _parse_product_type(wrapper: Any, where: str) -> ProductType:
    tag_str, payload = _unwrap(wrapper, f"{where} type")
    tag = _enum_value(ProductTypeTag, tag_str, "product type")
    library_kind = None
    if tag == ProductTypeTag.LIBRARY and payload:
        library_kind = _enum_value(LibraryKind, _first(payload, where), "library kind")
    return ProductType(tag=tag, library_kind=library_kind)


def _parse_product(prd: Dict[str, Any]) -> Product:
    name = _require_str(prd, "name", "product")
    where = f"product '{name}'"
    return Product(
        name=name,
        targets=_str_list(_require_list(prd, "targets", where), f"{where} targets"),
        type=_parse_product_type(_require(prd, "type", where), where),
    )


def _parse_products(dump: Dict[str, Any], desc: Dict[str, Any]) -> Tuple[Product, ...]:
    products = _optional_list(dump, "products", "dump manifest")
    if products is None:
        products = _optional_list(desc, "products", "describe manifest") or []
    return tuple(_parse_product(p) for p in products)


def _condition_platforms(condition: Any, where: str) -> Tuple[str, ...]:
    if condition is None:
        return ()
    if not isinstance(condition, dict):
        raise SchemaError(f"Condition in {where} must be an object")
    names = condition.get("platformNames") or []
    if not isinstance(names, list):
        raise SchemaError(f"platformNames in {where} must be an array")
    return _str_list(names, f"{where} platformNames")


def _parse_product_reference(payload: Any, where: str) -> ProductReference:
    if not isinstance(payload, list) or len(payload) < 2:
        raise SchemaError(f"Product dependency in {where} must have at least 2 elements")
    product_name, dep_identity = payload[0], payload[1]
    if not isinstance(product_name, str):
        raise SchemaError(f"Product name in {where} must be a string")
    if dep_identity is not None and not isinstance(dep_identity, str):
        raise SchemaError(f"Product package in {where} must be a string")
    condition = payload[3] if len(payload) > 3 else None
    return ProductReference(
        product_name=product_name,
        dep_identity=dep_identity,
        condition_platforms=_condition_platforms(condition, where),
    )


def _parse_target_reference(payload: Any, where: str) -> TargetReference:
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], str):
        raise SchemaError(f"Target reference in {where} must start with a name")
    condition = payload[1] if len(payload) > 1 else None
    return TargetReference(
        target_name=payload[0],
        condition_platforms=_condition_platforms(condition, where),
    )


_TARGET_DEPENDENCY_PARSERS: Dict[str, Tuple[str, Callable[[Any, str], Any]]] = {
    "product": ("product", _parse_product_reference),
    "byName": ("by_name", _parse_target_reference),
    "target": ("target", _parse_target_reference),
}


def _parse_target_dependency(wrapper: Any, where: str) -> TargetDependency:
    kind, payload = _unwrap(wrapper, f"{where} dependency")
    if kind not in _TARGET_DEPENDENCY_PARSERS:
        raise SchemaError(f"Unrecognized target dependency kind in {where}: {kind!r}")
    field_name, parse = _TARGET_DEPENDENCY_PARSERS[kind]
    return TargetDependency(**{field_name: parse(payload, where)})


def _index_by_name(targets: List[Dict[str, Any]], doc_name: str) -> Dict[str, Dict[str, Any]]:
    by_name: Dict[str, Dict[str, Any]] = {}
    for tgt in targets:
        name = _require_str(tgt, "name", f"{doc_name} target")
        if name in by_name:
            raise SchemaError(f"Duplicate target '{name}' in {doc_name} manifest")
        by_name[name] = tgt
    return by_name


def _pick(desc_tgt: Dict[str, Any], dump_tgt: Dict[str, Any], key: str) -> Any:
    """Prefer the describe value of ``key``, then the dump value."""
    if desc_tgt.get(key) is not None:
        return desc_tgt[key]
    return dump_tgt.get(key)


def _merge_target(dump_tgt: Dict[str, Any], desc_tgt: Dict[str, Any]) -> Target:
    name = dump_tgt["name"]
    where = f"target '{name}'"

    path = _pick(desc_tgt, dump_tgt, "path")
    if not isinstance(path, str):
        raise SchemaError(f"Missing required field 'path' in {where}")
    sources = _pick(desc_tgt, dump_tgt, "sources") or []
    if not isinstance(sources, list):
        raise SchemaError(f"Field 'sources' in {where} must be an array")
    type_str = _pick(desc_tgt, dump_tgt, "type")
    if type_str is None:
        raise SchemaError(f"Missing required field 'type' in {where}")
    if dump_tgt.get("type") is not None:
        # Validate the dump spelling even when describe supplies the type.
        _enum_value(TargetType, dump_tgt["type"], "target type", _TARGET_TYPE_ALIASES)
    exclude = _optional_list(dump_tgt, "exclude", where) or []

    return Target(
        name=name,
        type=_enum_value(TargetType, type_str, "target type", _TARGET_TYPE_ALIASES),
        c99name=_require_str(desc_tgt, "c99name", where),
        module_type=_require_str(desc_tgt, "module_type", where),
        path=path,
        sources=_str_list(sources, f"{where} sources"),
        dependencies=tuple(
            _parse_target_dependency(d, where)
            for d in (_optional_list(dump_tgt, "dependencies", where) or [])
        ),
        exclude=_str_list(exclude, f"{where} exclude"),
    )


def _parse_targets(dump: Dict[str, Any], desc: Dict[str, Any]) -> Tuple[Target, ...]:
    dump_targets = _optional_list(dump, "targets", "dump manifest") or []
    desc_by_name = _index_by_name(
        _optional_list(desc, "targets", "describe manifest") or [], "describe"
    )
    dump_by_name = _index_by_name(dump_targets, "dump")

    missing_in_dump = [n for n in desc_by_name if n not in dump_by_name]
    if missing_in_dump:
        raise SchemaError(f"Targets missing from the dump manifest: {', '.join(missing_in_dump)}")

    targets = []
    for dump_tgt in dump_targets:
        desc_tgt = desc_by_name.get(dump_tgt["name"])
        if desc_tgt is None:
            raise SchemaError(f"Target '{dump_tgt['name']}' missing from the describe manifest")
        targets.append(_merge_target(dump_tgt, desc_tgt))
    return tuple(targets)


def merge(dump_manifest: Dict[str, Any], desc_manifest: Dict[str, Any]) -> PackageInfo:
    """Merge decoded dump and describe manifests into a ``PackageInfo``.

    Args:
        dump_manifest: Decoded ``swift package dump-package`` output.
        desc_manifest: Decoded ``swift package describe --type json`` output.

    Returns:
        PackageInfo: The merged package.

    Raises:
        SchemaError: If a required field is missing, has the wrong shape,
            or holds an unrecognized enum value, or if the two documents
            do not declare the same targets.
    """
    if not isinstance(dump_manifest, dict):
        raise SchemaError("The dump manifest must be a JSON object")
    if not isinstance(desc_manifest, dict):
        raise SchemaError("The describe manifest must be a JSON object")

    with Timer() as t:
        pkg_info = PackageInfo(
            name=_require_str(dump_manifest, "name", "dump manifest"),
            path=_parse_path(dump_manifest, desc_manifest),
            tools_version=_parse_tools_version(dump_manifest, desc_manifest),
            platforms=_parse_platforms(dump_manifest, desc_manifest),
            dependencies=_parse_dependencies(dump_manifest, desc_manifest),
            products=_parse_products(dump_manifest, desc_manifest),
            targets=_parse_targets(dump_manifest, desc_manifest),
        )

    if is_debug_enabled(logger):
        logger.debug(
            "Merged package manifests",
            extra=extra_context(
                event="manifest_merged",
                component="merger",
                action="merge",
                package=pkg_info.name,
                target_count=len(pkg_info.targets),
                duration_ms=t.duration_ms(),
            ),
        )
    return pkg_info


def merge_json(dump_json: str, desc_json: str) -> PackageInfo:
    """Merge the manifests given as JSON strings."""
    try:
        dump_manifest = json.loads(dump_json)
        desc_manifest = json.loads(desc_json)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Invalid manifest JSON: {exc}") from exc
    return merge(dump_manifest, desc_manifest)


def merge_files(dump_path: str, desc_path: str) -> PackageInfo:
    """Merge the manifests stored in ``dump_path`` and ``desc_path``."""
    with open(dump_path, "r", encoding="utf-8") as fh:
        dump_json = fh.read()
    with open(desc_path, "r", encoding="utf-8") as fh:
        desc_json = fh.read()
    return merge_json(dump_json, desc_json)
