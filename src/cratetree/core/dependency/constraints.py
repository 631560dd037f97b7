"""Semantic versions and version constraints.

This module is the version comparison primitive the resolver is built on. It
isolates precedence and matching rules behind a narrow interface
(``satisfies``, ``max_version``, ``sort_versions``) so the graph algorithm
never inspects version strings itself.

Precedence follows SemVer 2.0.0 section 11: build metadata is ignored,
pre-release versions sort below the associated normal version, and
pre-release identifiers compare numerically when both are numeric and
lexically otherwise.

Constraint syntax follows the registry's requirement grammar: a
comma-separated list of comparators that must all hold. Supported operators
are exact (``=``, ``==``), not-equal (``!=``), ranges (``>``, ``>=``, ``<``,
``<=``), tilde (``~``), caret (``^``), wildcards (``*``, ``1.*``, ``1.2.*``)
and bare versions, which carry caret semantics. Partial versions (``1``,
``1.2``) are accepted wherever a version is.

A pre-release candidate only satisfies a constraint when one of its
comparators names a pre-release of the same ``major.minor.patch``.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence, Union


# ---------------------------------------------------------------------------
# Version parsing and precedence
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)

# (major, minor, patch, release_flag, pre-release identifier keys)
VersionKey = tuple


@dataclass(frozen=True)
class SemVer:
    """A parsed semantic version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        pre: Pre-release identifiers (empty for a normal release).
        build: Build metadata, kept for display only.
    """

    major: int
    minor: int
    patch: int
    pre: tuple[str, ...] = ()
    build: str = ""

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    @property
    def triple(self) -> tuple[int, int, int]:
        return self.major, self.minor, self.patch

    @property
    def key(self) -> VersionKey:
        """Total-order sort key implementing SemVer precedence."""
        if not self.pre:
            return (self.major, self.minor, self.patch, 1, ())
        idents = tuple(
            (0, int(p), "") if p.isdigit() else (1, 0, p) for p in self.pre
        )
        return (self.major, self.minor, self.patch, 0, idents)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(self.pre)
        if self.build:
            text += "+" + self.build
        return text


@lru_cache(maxsize=4096)
def parse_version(version: str) -> SemVer:
    """Parse a semantic version string.

    Args:
        version: Semantic version string (e.g., "1.2.3", "0.1.0-alpha.1").

    Returns:
        The parsed ``SemVer``.

    Raises:
        ValueError: If the string does not match semantic version format.
    """
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
    return SemVer(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        pre=pre,
        build=m.group("build") or "",
    )


def _version_key(version: str) -> VersionKey:
    """Sort key for version strings under SemVer precedence."""
    return parse_version(version).key


def _release_key(major: int, minor: int, patch: int) -> VersionKey:
    return (major, minor, patch, 1, ())


def _floor_key(major: int, minor: int, patch: int) -> VersionKey:
    # Sorts below every pre-release of major.minor.patch.
    return (major, minor, patch, 0, ())


# ---------------------------------------------------------------------------
# Comparators
# ---------------------------------------------------------------------------

_CONSTRAINT_ATOM_RE = re.compile(
    r"^\s*(?P<op>==|=|!=|>=|<=|>|<|\^|~)?\s*"
    r"(?P<major>0|[1-9]\d*|[*xX])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[*xX]))?"
    r"(?:\.(?P<patch>0|[1-9]\d*|[*xX]))?"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+[0-9A-Za-z\-.]+)?\s*$"
)

_WILDCARDS = frozenset({"*", "x", "X"})


@dataclass(frozen=True)
class _Comparator:
    """One compiled comparator: a half-open key interval or an exclusion."""

    lower: VersionKey | None
    lower_inclusive: bool
    upper: VersionKey | None
    upper_inclusive: bool
    excluded: VersionKey | None = None
    pre_triple: tuple[int, int, int] | None = None

    def matches(self, key: VersionKey) -> bool:
        if self.excluded is not None:
            return key != self.excluded
        if self.lower is not None:
            if key < self.lower or (key == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if key > self.upper or (key == self.upper and not self.upper_inclusive):
                return False
        return True


def _between(lower: VersionKey | None, upper: VersionKey | None) -> _Comparator:
    """``lower <= v < upper`` with either side open when None."""
    return _Comparator(lower, True, upper, False)


def _compile_atom(atom: str) -> _Comparator | None:
    """Compile a single comparator. Returns None for a bare wildcard."""
    m = _CONSTRAINT_ATOM_RE.match(atom)
    if not m:
        raise ValueError(f"Invalid constraint atom: {atom!r}")

    given_op = m.group("op")
    op = given_op or "^"
    parts = [m.group("major"), m.group("minor"), m.group("patch")]
    pre_text = m.group("pre")

    # Truncate at the first wildcard; "1.*" is the partial version "1".
    nums: list[int] = []
    wildcard = False
    for part in parts:
        if part is None:
            break
        if part in _WILDCARDS:
            wildcard = True
            break
        nums.append(int(part))
    if wildcard:
        if given_op not in (None, "=", "==") or pre_text:
            raise ValueError(f"Invalid constraint atom: {atom!r}")
        op = "="
    if pre_text and len(nums) < 3:
        raise ValueError(f"Invalid constraint atom: {atom!r}")
    if not nums:
        return None

    pre = tuple(pre_text.split(".")) if pre_text else ()
    full: VersionKey | None = None
    if len(nums) == 3:
        full = SemVer(nums[0], nums[1], nums[2], pre).key
    pre_triple = (nums[0], nums[1], nums[2]) if pre else None

    major = nums[0]
    minor = nums[1] if len(nums) > 1 else None
    patch = nums[2] if len(nums) > 2 else None

    if op in ("=", "=="):
        if full is not None:
            return _Comparator(full, True, full, True, pre_triple=pre_triple)
        if minor is None:
            return _between(_release_key(major, 0, 0), _floor_key(major + 1, 0, 0))
        return _between(_release_key(major, minor, 0), _floor_key(major, minor + 1, 0))

    if op == "!=":
        if full is None:
            raise ValueError(f"Invalid constraint atom: {atom!r}")
        return _Comparator(None, True, None, True, excluded=full, pre_triple=pre_triple)

    if op == ">":
        if full is not None:
            return _Comparator(full, False, None, True, pre_triple=pre_triple)
        if minor is None:
            return _between(_release_key(major + 1, 0, 0), None)
        return _between(_release_key(major, minor + 1, 0), None)

    if op == ">=":
        if full is not None:
            return _Comparator(full, True, None, True, pre_triple=pre_triple)
        return _between(_release_key(major, minor or 0, 0), None)

    if op == "<":
        if full is not None:
            return _Comparator(None, True, full, False, pre_triple=pre_triple)
        return _between(None, _floor_key(major, minor or 0, 0))

    if op == "<=":
        if full is not None:
            return _Comparator(None, True, full, True, pre_triple=pre_triple)
        if minor is None:
            return _between(None, _floor_key(major + 1, 0, 0))
        return _between(None, _floor_key(major, minor + 1, 0))

    lower = full if full is not None else _release_key(major, minor or 0, patch or 0)

    if op == "~":
        if minor is None:
            return _Comparator(lower, True, _floor_key(major + 1, 0, 0), False, pre_triple=pre_triple)
        return _Comparator(lower, True, _floor_key(major, minor + 1, 0), False, pre_triple=pre_triple)

    # Caret: compatible updates that do not modify the left-most non-zero part.
    if major > 0 or minor is None:
        upper = _floor_key(major + 1, 0, 0)
    elif minor > 0 or patch is None:
        upper = _floor_key(0, minor + 1, 0)
    else:
        upper = _floor_key(0, 0, patch + 1)
    return _Comparator(lower, True, upper, False, pre_triple=pre_triple)


@lru_cache(maxsize=2048)
def _compile(raw: str) -> tuple[_Comparator, ...]:
    atoms = [a.strip() for a in raw.strip().split(",") if a.strip()]
    compiled = [_compile_atom(atom) for atom in atoms]
    return tuple(c for c in compiled if c is not None)


# ---------------------------------------------------------------------------
# VersionConstraint: Declarative version requirement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionConstraint:
    """A version requirement as written in registry metadata.

    Supports:
    - Bare version, caret semantics: ``1.2.3`` (same as ``^1.2.3``)
    - Exact match: ``=1.0.0`` or ``==1.0.0``
    - Not-equal: ``!=1.0.0``
    - Ranges: ``>=1.0.0``, ``<=2.0.0``, ``>1.0.0``, ``<2.0.0``
    - Caret and tilde: ``^1.2``, ``~1.2.3``
    - Wildcards: ``*``, ``1.*``, ``1.2.*``
    - Compound (comma-separated, all must hold): ``>=1.0.0, <2.0.0``

    Attributes:
        raw: The raw constraint string as authored. Empty means any version.
    """

    raw: str

    @property
    def is_any(self) -> bool:
        """True if the constraint places no restriction on the version."""
        return not _compile(self.raw)

    def validate(self) -> VersionConstraint:
        """Compile the constraint eagerly, raising ``ValueError`` if invalid."""
        _compile(self.raw)
        return self

    def satisfies(self, version: str) -> bool:
        """Check whether a version string satisfies this constraint.

        For compound constraints (comma-separated), ALL comparators must be
        satisfied (conjunction semantics).

        Args:
            version: A semantic version string (e.g., "1.2.3").

        Returns:
            True if the version satisfies every comparator.

        Raises:
            ValueError: If *version* or the constraint is malformed.
        """
        parsed = parse_version(version)
        comparators = _compile(self.raw)
        if parsed.is_prerelease and not any(
            c.pre_triple == parsed.triple for c in comparators
        ):
            return False
        key = parsed.key
        return all(c.matches(key) for c in comparators)

    @classmethod
    def combine(cls, constraints: Iterable[VersionConstraint]) -> VersionConstraint:
        """AND several constraints into one."""
        raws = [c.raw.strip() for c in constraints if c.raw.strip()]
        return cls(", ".join(raws))

    def __str__(self) -> str:
        return self.raw.strip() or "*"

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r})"


ANY = VersionConstraint("*")

ConstraintLike = Union[str, VersionConstraint, None]


def as_constraint(value: ConstraintLike) -> VersionConstraint:
    """Coerce a string, constraint or None (any version) into a constraint."""
    if value is None:
        return ANY
    if isinstance(value, VersionConstraint):
        return value
    return VersionConstraint(value)


# ---------------------------------------------------------------------------
# Narrow interface used by the resolver
# ---------------------------------------------------------------------------


def satisfies(version: str, constraint: ConstraintLike) -> bool:
    """Return True if *version* satisfies *constraint* (None means any)."""
    return as_constraint(constraint).satisfies(version)


def sort_versions(versions: Iterable[str], *, reverse: bool = False) -> list[str]:
    """Sort version strings by SemVer precedence."""
    return sorted(versions, key=_version_key, reverse=reverse)


def max_version(versions: Sequence[str]) -> str | None:
    """Return the highest version by SemVer precedence, or None if empty."""
    if not versions:
        return None
    return max(versions, key=_version_key)
