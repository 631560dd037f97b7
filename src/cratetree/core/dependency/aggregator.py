"""Collects walker outcomes into the final ``ResolvedTree``."""

from __future__ import annotations

import logging

from cratetree.core.dependency.models import (
    FeatureResolutionError,
    PackageVersion,
    ResolvedTree,
)
from cratetree.exceptions import ResolutionError

logger = logging.getLogger(__name__)

# (feature name, package version declaring the feature)
Attribution = tuple[str, PackageVersion]


class ResolutionAggregator:
    """Ordered, de-duplicated accumulator of packages and feature errors.

    Packages are de-duplicated by (name, version) identity and keep the
    order in which they were first added. Errors are de-duplicated by
    attribution: the first failure recorded for a feature wins, later
    failures of the same feature are logged and dropped.
    """

    def __init__(self) -> None:
        self._packages: dict[PackageVersion, None] = {}
        self._errors: dict[Attribution, FeatureResolutionError] = {}

    def add_package(self, package: PackageVersion) -> bool:
        """Record a resolved package. Returns False if already present."""
        if package in self._packages:
            return False
        self._packages[package] = None
        return True

    def add_error(self, attribution: Attribution, cause: ResolutionError) -> bool:
        """Record a failure under *attribution*. Returns False if dropped."""
        feature, package = attribution
        if attribution in self._errors:
            logger.debug(
                "Feature %r of %s already failed; dropping: %s", feature, package, cause
            )
            return False
        logger.warning("Feature %r of %s failed: %s", feature, package, cause)
        self._errors[attribution] = FeatureResolutionError(
            feature=feature, package=package, cause=cause
        )
        return True

    def merge(self, tree: ResolvedTree) -> None:
        """Fold another resolution result in, keeping first-seen order."""
        for package in tree.packages:
            self.add_package(package)
        for error in tree.errors:
            self._errors.setdefault((error.feature, error.package), error)

    def build(self) -> ResolvedTree:
        return ResolvedTree(
            packages=tuple(self._packages),
            errors=tuple(self._errors.values()),
        )
