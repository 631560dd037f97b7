"""Tests for version parsing, precedence and constraint matching.

Validates exact (=, ==), range (>=, <=, >, <), not-equal (!=), caret (^),
tilde (~), wildcard (*) and bare-version requirements, partial versions,
compound comma-separated constraints and pre-release gating.
"""

from __future__ import annotations

import pytest

from cratetree.core.dependency import (
    ANY,
    SemVer,
    VersionConstraint,
    as_constraint,
    max_version,
    parse_version,
    satisfies,
    sort_versions,
)


class TestParseVersion:
    """Tests for ``parse_version`` and SemVer precedence."""

    def test_release(self) -> None:
        v = parse_version("1.2.3")
        assert v == SemVer(1, 2, 3)
        assert not v.is_prerelease
        assert str(v) == "1.2.3"

    def test_prerelease_and_build(self) -> None:
        v = parse_version("1.0.0-alpha.1+build.5")
        assert v.pre == ("alpha", "1")
        assert v.build == "build.5"
        assert v.is_prerelease
        assert str(v) == "1.0.0-alpha.1+build.5"

    @pytest.mark.parametrize("bad", ["1.2", "v1.2.3", "01.2.3", "1.2.3-", "abc", ""])
    def test_invalid_version_raises(self, bad: str) -> None:
        with pytest.raises(ValueError, match="Invalid semantic version"):
            parse_version(bad)

    def test_triple(self) -> None:
        assert parse_version("3.14.159-rc.1").triple == (3, 14, 159)

    def test_semver_precedence_order(self) -> None:
        """Ordering example from SemVer 2.0.0 section 11."""
        expected = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        shuffled = [expected[i] for i in (7, 3, 0, 5, 1, 6, 2, 4)]
        assert sort_versions(shuffled) == expected

    def test_build_metadata_ignored_in_precedence(self) -> None:
        assert parse_version("1.0.0+a").key == parse_version("1.0.0+b").key

    def test_numeric_not_lexical_ordering(self) -> None:
        assert sort_versions(["1.10.0", "1.9.0", "1.2.0"], reverse=True) == [
            "1.10.0", "1.9.0", "1.2.0",
        ]

    def test_max_version(self) -> None:
        assert max_version(["0.9.0", "1.0.0-rc.1", "0.10.0"]) == "1.0.0-rc.1"
        assert max_version([]) is None


class TestComparisonOperators:
    """Tests for the plain comparison operators."""

    def test_exact_match(self) -> None:
        vc = VersionConstraint("=1.0.0")
        assert vc.satisfies("1.0.0") is True
        assert vc.satisfies("1.0.1") is False
        assert VersionConstraint("==1.0.0").satisfies("1.0.0") is True

    def test_exact_partial_matches_range(self) -> None:
        """=1.2 means any 1.2.x."""
        vc = VersionConstraint("=1.2")
        assert vc.satisfies("1.2.0") is True
        assert vc.satisfies("1.2.9") is True
        assert vc.satisfies("1.3.0") is False

    def test_gte_and_lt(self) -> None:
        vc = VersionConstraint(">=1.0.0, <2.0.0")
        assert vc.satisfies("1.0.0") is True
        assert vc.satisfies("1.99.99") is True
        assert vc.satisfies("2.0.0") is False
        assert vc.satisfies("0.9.9") is False

    def test_gt_exclusive(self) -> None:
        vc = VersionConstraint(">1.0.0")
        assert vc.satisfies("1.0.0") is False
        assert vc.satisfies("1.0.1") is True

    def test_gt_partial_skips_whole_minor(self) -> None:
        vc = VersionConstraint(">1.2")
        assert vc.satisfies("1.2.9") is False
        assert vc.satisfies("1.3.0") is True

    def test_lte_partial_includes_whole_minor(self) -> None:
        vc = VersionConstraint("<=1.2")
        assert vc.satisfies("1.2.9") is True
        assert vc.satisfies("1.3.0") is False

    def test_not_equal(self) -> None:
        vc = VersionConstraint("!=1.0.0")
        assert vc.satisfies("1.0.0") is False
        assert vc.satisfies("1.0.1") is True


class TestCaretAndTilde:
    """Tests for caret, bare-version and tilde requirements."""

    @pytest.mark.parametrize(
        ("raw", "version", "expected"),
        [
            ("^1.2.3", "1.2.3", True),
            ("^1.2.3", "1.9.0", True),
            ("^1.2.3", "1.2.2", False),
            ("^1.2.3", "2.0.0", False),
            ("^0.2.3", "0.2.9", True),
            ("^0.2.3", "0.3.0", False),
            ("^0.0.3", "0.0.3", True),
            ("^0.0.3", "0.0.4", False),
            ("^0.0", "0.0.7", True),
            ("^0.0", "0.1.0", False),
            ("^0", "0.9.9", True),
            ("^0", "1.0.0", False),
        ],
    )
    def test_caret(self, raw: str, version: str, expected: bool) -> None:
        assert VersionConstraint(raw).satisfies(version) is expected

    def test_bare_version_has_caret_semantics(self) -> None:
        vc = VersionConstraint("1.2")
        assert vc.satisfies("1.2.0") is True
        assert vc.satisfies("1.9.9") is True
        assert vc.satisfies("1.1.9") is False
        assert vc.satisfies("2.0.0") is False

    def test_tilde(self) -> None:
        vc = VersionConstraint("~1.2.3")
        assert vc.satisfies("1.2.3") is True
        assert vc.satisfies("1.2.9") is True
        assert vc.satisfies("1.3.0") is False

    def test_tilde_major_only(self) -> None:
        vc = VersionConstraint("~1")
        assert vc.satisfies("1.9.0") is True
        assert vc.satisfies("2.0.0") is False


class TestWildcards:
    """Tests for ``*`` and partial wildcards."""

    def test_star_is_any(self) -> None:
        vc = VersionConstraint("*")
        assert vc.is_any
        assert vc.satisfies("0.0.1") is True
        assert vc.satisfies("99.0.0") is True

    def test_empty_is_any(self) -> None:
        assert VersionConstraint("").is_any
        assert str(VersionConstraint("")) == "*"

    def test_major_wildcard(self) -> None:
        vc = VersionConstraint("1.*")
        assert not vc.is_any
        assert vc.satisfies("1.0.0") is True
        assert vc.satisfies("1.5.2") is True
        assert vc.satisfies("2.0.0") is False

    def test_minor_wildcard(self) -> None:
        vc = VersionConstraint("1.2.x")
        assert vc.satisfies("1.2.7") is True
        assert vc.satisfies("1.3.0") is False


class TestPrereleaseGating:
    """Pre-releases only match comparators naming the same version triple."""

    def test_prerelease_excluded_by_release_constraint(self) -> None:
        assert VersionConstraint("^1.0").satisfies("1.1.0-alpha") is False
        assert VersionConstraint("*").satisfies("1.1.0-alpha") is False

    def test_prerelease_opt_in(self) -> None:
        vc = VersionConstraint(">=1.0.0-alpha")
        assert vc.satisfies("1.0.0-beta") is True
        assert vc.satisfies("1.0.0") is True
        assert vc.satisfies("1.5.0") is True
        assert vc.satisfies("1.1.0-alpha") is False

    def test_caret_prerelease_upper_bound(self) -> None:
        vc = VersionConstraint("^1.1.0-beta")
        assert vc.satisfies("1.1.0-beta.1") is True
        assert vc.satisfies("1.1.0-alpha") is False
        assert vc.satisfies("2.0.0") is False


class TestInvalidConstraints:
    """Malformed requirements raise ``ValueError``."""

    @pytest.mark.parametrize(
        "raw", ["abc", ">>1.0.0", ">=1.*", "^1.x", "!=1.2", "1.2-alpha", "1.0.0.0"]
    )
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(ValueError, match="Invalid constraint atom"):
            VersionConstraint(raw).validate()

    def test_invalid_version_argument(self) -> None:
        with pytest.raises(ValueError):
            VersionConstraint("^1.0").satisfies("not-a-version")


class TestHelpers:
    """Tests for ``combine``, ``as_constraint`` and ``satisfies``."""

    def test_combine_is_conjunction(self) -> None:
        vc = VersionConstraint.combine(
            [VersionConstraint("^1.0"), VersionConstraint("<1.5"), ANY]
        )
        assert vc.satisfies("1.4.9") is True
        assert vc.satisfies("1.5.0") is False
        assert vc.satisfies("0.9.0") is False

    def test_combine_nothing_is_any(self) -> None:
        assert VersionConstraint.combine([]).is_any

    def test_as_constraint(self) -> None:
        assert as_constraint(None) is ANY
        vc = VersionConstraint("^1")
        assert as_constraint(vc) is vc
        assert as_constraint("^1") == vc

    def test_module_level_satisfies(self) -> None:
        assert satisfies("1.0.0", None) is True
        assert satisfies("1.0.0", "^2") is False

    def test_str_and_repr(self) -> None:
        vc = VersionConstraint(" ^1.2 ")
        assert str(vc) == "^1.2"
        assert repr(vc) == "VersionConstraint(' ^1.2 ')"
