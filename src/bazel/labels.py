"""Bazel label value type and the naming conventions used for Swift targets."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional

from common.schema_validate import SchemaError
from constants import Constants

_LABEL_PATTERN = re.compile(
    r"^(?:(?P<repo>@{1,2}[^/:@]*))?(?:(?P<slashes>//)(?P<package>[^:]*))?(?::(?P<name>[^:]+))?$"
)

_CANONICAL_PREFIX = "@@"


def normalize_repo_name(repo_name: str) -> str:
    """Return ``repo_name`` with exactly one leading ``@``."""
    return Constants.REPO_NAME_PREFIX + repo_name.lstrip("@")


def _label_repo_name(repo_name: str) -> str:
    # Canonical names (including the bare "@@" main repository) are kept as written.
    if repo_name.startswith(_CANONICAL_PREFIX):
        return repo_name
    return normalize_repo_name(repo_name)


@dataclass(frozen=True)
class BazelLabel:
    """A ``repository + package + name`` reference into the Bazel graph.

    ``repository_name`` is None for a repository-relative label, ``"@@"``
    for the canonical main repository, ``"@@name"`` for a canonical
    repository name and ``"@name"`` for an apparent one.
    """
    name: str
    package: str = ""
    repository_name: Optional[str] = None

    def __post_init__(self):
        if self.repository_name is not None:
            object.__setattr__(self, "repository_name", _label_repo_name(self.repository_name))

    @property
    def is_main_repository(self) -> bool:
        return self.repository_name == _CANONICAL_PREFIX

    def repo_key(self) -> Optional[str]:
        """Repository name with a single ``@``, for comparing against configured names.

        None for repository-relative labels and for the main repository.
        """
        if self.repository_name is None or self.is_main_repository:
            return None
        return normalize_repo_name(self.repository_name)

    @classmethod
    def parse(cls, value: str) -> "BazelLabel":
        """Parse a label string.

        Supported forms: ``@repo//pkg:name``, ``@@repo//pkg:name``,
        ``@@//pkg:name`` (main repository), ``@repo//pkg``, ``//pkg:name``,
        ``//pkg``, ``:name`` and ``@repo``.

        Raises:
            SchemaError: If ``value`` is not a label.
        """
        match = _LABEL_PATTERN.match(value or "")
        if not match or not value:
            raise SchemaError(f"Invalid Bazel label: {value!r}")
        repo = match.group("repo")
        package = match.group("package") or ""
        name = match.group("name")

        if repo is not None and repo.strip("@") == "":
            if repo != _CANONICAL_PREFIX or not match.group("slashes"):
                raise SchemaError(f"Invalid Bazel label: {value!r}")
        if name is None:
            if match.group("slashes"):
                if not package:
                    raise SchemaError(f"Invalid Bazel label: {value!r}")
                name = package.rsplit("/", 1)[-1]
            elif repo is not None:
                name = repo.lstrip("@")
            else:
                raise SchemaError(f"Invalid Bazel label: {value!r}")
        elif repo is not None and not match.group("slashes"):
            # "@repo:name" is not a valid label
            raise SchemaError(f"Invalid Bazel label: {value!r}")
        return cls(name=name, package=package, repository_name=repo)

    def __str__(self) -> str:
        return f"{self.repository_name or ''}//{self.package}:{self.name}"


def objc_label_name(target_name: str) -> str:
    """Name of the native Objective-C target that sits beside a module alias."""
    return target_name + Constants.OBJC_LABEL_SUFFIX


def label_from_target(repo_name: str, target) -> BazelLabel:
    """Create the label for a Swift package target.

    The label lives in the root package of ``repo_name``; its name is the
    target path with ``/`` replaced by ``_``. When the last path component
    is not the target name, the target name is appended to the path first.
    """
    if posixpath.basename(target.path) == target.name:
        name = target.path
    else:
        name = posixpath.join(target.path, target.name)
    return BazelLabel(
        name=name.replace("/", "_"),
        package="",
        repository_name=repo_name,
    )
