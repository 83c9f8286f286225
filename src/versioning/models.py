"""Data models for dependency version requirements."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import semantic_version


class RequirementKind(Enum):
    """How a dependency requirement pins its versions."""
    RANGE = "range"
    EXACT = "exact"
    REVISION = "revision"
    BRANCH = "branch"


@dataclass(frozen=True)
class VersionRange:
    """Half-open version range ``[lower_bound, upper_bound)``.

    Bounds are kept as the strings the manifest declared; they are only
    parsed when a version is checked against the range.
    """
    lower_bound: str
    upper_bound: str

    def contains(self, version: str) -> bool:
        """Return True if ``version`` falls within the range.

        Raises:
            ValueError: If ``version`` or a bound is not a semantic version.
        """
        ver = semantic_version.Version.coerce(version)
        lower = semantic_version.Version.coerce(self.lower_bound)
        upper = semantic_version.Version.coerce(self.upper_bound)
        return lower <= ver < upper


@dataclass(frozen=True)
class DependencyRequirement:
    """Tagged requirement of a package dependency.

    Only the fields matching ``kind`` are populated: ``ranges`` for
    ``RANGE``, ``exact`` for ``EXACT``, ``revision`` or ``branch`` for the
    source-control pins.
    """
    kind: RequirementKind = RequirementKind.RANGE
    ranges: Tuple[VersionRange, ...] = ()
    exact: Tuple[str, ...] = ()
    revision: Optional[str] = None
    branch: Optional[str] = None

    @classmethod
    def from_ranges(cls, ranges) -> "DependencyRequirement":
        return cls(kind=RequirementKind.RANGE, ranges=tuple(ranges))

    @classmethod
    def from_exact(cls, versions) -> "DependencyRequirement":
        return cls(kind=RequirementKind.EXACT, exact=tuple(versions))

    @classmethod
    def from_revision(cls, revision: str) -> "DependencyRequirement":
        return cls(kind=RequirementKind.REVISION, revision=revision)

    @classmethod
    def from_branch(cls, branch: str) -> "DependencyRequirement":
        return cls(kind=RequirementKind.BRANCH, branch=branch)

    def is_satisfied_by(self, version: str) -> bool:
        """Return True if ``version`` matches any range or exact version.

        Revision and branch pins cannot be compared against a version
        string, so they never report a match.
        """
        if self.kind == RequirementKind.RANGE:
            return any(rng.contains(version) for rng in self.ranges)
        if self.kind == RequirementKind.EXACT:
            wanted = semantic_version.Version.coerce(version)
            return any(semantic_version.Version.coerce(v) == wanted for v in self.exact)
        return False
