"""Version selection: pick the highest candidate satisfying all constraints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from cratetree.core.dependency.constraints import (
    ConstraintLike,
    VersionConstraint,
    as_constraint,
    parse_version,
    sort_versions,
)
from cratetree.core.dependency.models import PackageVersion
from cratetree.exceptions import NoSatisfyingVersion

if TYPE_CHECKING:
    from cratetree.registry.base import MetadataProvider

logger = logging.getLogger(__name__)


class VersionSelector:
    """Selects one concrete version of a package.

    Selection is a pure function of the provider's version list and the
    given constraints: candidates are filtered to those satisfying every
    constraint and the maximum by SemVer precedence wins.

    With no effective constraint the latest release is chosen; a
    pre-release is only chosen when the package has no release at all.

    Args:
        provider: Metadata provider supplying version lists.
    """

    def __init__(self, provider: MetadataProvider) -> None:
        self._provider = provider

    def candidates(self, name: str) -> list[str]:
        """Return the parseable versions of *name*, highest first.

        Raises:
            ProviderUnavailable: Passed through from the provider.
        """
        valid: list[str] = []
        for version in self._provider.list_versions(name):
            try:
                parse_version(version)
            except ValueError:
                logger.debug("Skipping unparseable version %r of %s", version, name)
                continue
            valid.append(version)
        return sort_versions(valid, reverse=True)

    def select(
        self,
        name: str,
        constraints: ConstraintLike | Iterable[VersionConstraint] = None,
    ) -> PackageVersion:
        """Select the highest version of *name* meeting *constraints*.

        Args:
            name: Registry name of the package.
            constraints: A single constraint, an iterable of constraints to
                AND together, or None for any version.

        Returns:
            The selected ``PackageVersion``.

        Raises:
            NoSatisfyingVersion: If no candidate satisfies the constraints.
            ProviderUnavailable: Passed through from the provider.
        """
        combined = _combine(constraints)
        candidates = self.candidates(name)

        if combined.is_any:
            chosen = next(
                (v for v in candidates if not parse_version(v).is_prerelease),
                candidates[0] if candidates else None,
            )
        else:
            chosen = next((v for v in candidates if combined.satisfies(v)), None)

        if chosen is None:
            raise NoSatisfyingVersion(name, str(combined), candidates)

        logger.debug("Selected %s@%s for %s", name, chosen, combined)
        return PackageVersion(name, chosen)


def _combine(
    constraints: ConstraintLike | Iterable[VersionConstraint],
) -> VersionConstraint:
    if constraints is None or isinstance(constraints, (str, VersionConstraint)):
        return as_constraint(constraints).validate()
    return VersionConstraint.combine(constraints).validate()
