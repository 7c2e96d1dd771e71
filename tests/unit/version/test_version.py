"""Tests for Version parsing and ordering."""
from __future__ import annotations

import pickle

import pytest

from embedded_cassandra.core.exceptions import EmbeddedCassandraError, InvalidVersionFormatError
from embedded_cassandra.core.version import Version, compare


class TestParse:
    def test_parses_components(self) -> None:
        version = Version.parse("3.11.10")
        assert (version.major, version.minor, version.patch, version.label) == (3, 11, 10, None)

    def test_patch_is_optional(self) -> None:
        version = Version.parse("4.0")
        assert version.patch is None
        assert str(version) == "4.0"

    @pytest.mark.parametrize(
        "text,label",
        [("4.0-beta4", "beta4"), ("4.0.0-rc1", "rc1"), ("4.0rc2", "rc2"), ("5.0-alpha1", "alpha1")],
    )
    def test_suffix_becomes_label(self, text: str, label: str) -> None:
        assert Version.parse(text).label == label

    @pytest.mark.parametrize("text", ["  4.1.3 ", "\t3.11\n", "4.0-beta4"])
    def test_str_is_trimmed_input(self, text: str) -> None:
        assert str(Version.parse(text)) == text.strip()

    @pytest.mark.parametrize("text", ["", "4", "four.one", "v4.1.3", ".4.1", "4.x"])
    def test_rejects_malformed_text(self, text: str) -> None:
        with pytest.raises(InvalidVersionFormatError) as exc_info:
            Version.parse(text)
        assert exc_info.value.context["version"] == text

    def test_rejects_non_string(self) -> None:
        with pytest.raises(InvalidVersionFormatError):
            Version.parse(4.1)  # type: ignore[arg-type]

    def test_error_is_value_error_and_package_error(self) -> None:
        with pytest.raises(ValueError):
            Version.parse("nope")
        with pytest.raises(EmbeddedCassandraError):
            Version.parse("nope")


class TestOrdering:
    def test_semantic_order(self) -> None:
        assert Version.parse("3.11.3") < Version.parse("3.11.10") < Version.parse("4.0")

    def test_absent_patch_sorts_before_present_patch(self) -> None:
        assert Version.parse("3.11") < Version.parse("3.11.0")
        assert Version.parse("3.11.0") > Version.parse("3.11")

    def test_equality_is_raw_string_equality(self) -> None:
        assert Version.parse("4.0") != Version.parse("4.0.0")
        assert Version.parse(" 4.0.0") == Version.parse("4.0.0")
        assert hash(Version.parse("4.0.0")) == hash(Version.parse("4.0.0 "))

    def test_label_falls_back_to_raw_string(self) -> None:
        assert Version.parse("4.0-alpha1") < Version.parse("4.0-beta1")
        assert sorted(Version.parse(v) for v in ["4.0-rc1", "4.0-beta4", "4.0-alpha4"]) == [
            Version.parse("4.0-alpha4"),
            Version.parse("4.0-beta4"),
            Version.parse("4.0-rc1"),
        ]

    def test_compare(self) -> None:
        assert compare(Version.parse("4.0"), Version.parse("4.0")) == 0
        assert compare(Version.parse("3.0"), Version.parse("4.0")) < 0
        assert compare(Version.parse("4.1.3"), Version.parse("4.1.2")) > 0

    def test_not_comparable_with_strings(self) -> None:
        assert Version.parse("4.0") != "4.0"
        with pytest.raises(TypeError):
            Version.parse("4.0") < "4.1"  # type: ignore[operator]


class TestValueSemantics:
    def test_immutable(self) -> None:
        version = Version.parse("4.1.3")
        with pytest.raises(AttributeError):
            version.major = 5  # type: ignore[misc]

    def test_pickle_round_trip(self) -> None:
        version = Version.parse("4.0-beta4")
        assert pickle.loads(pickle.dumps(version)) == version

    def test_constructor_builds_raw(self) -> None:
        assert str(Version(4, 1, 3)) == "4.1.3"
        assert str(Version(4, 0, None, "beta4")) == "4.0-beta4"

    def test_constructor_rejects_negative_components(self) -> None:
        with pytest.raises(InvalidVersionFormatError):
            Version(-1, 0)
