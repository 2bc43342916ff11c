import pytest

from wholesale_pricing.errors import EvaluationFailed
from wholesale_pricing.policy.versioning import (
    compare_versions,
    is_major_update,
    is_minor_or_patch_update,
    is_patch_update,
    parse_version,
    validate_version,
)


@pytest.mark.parametrize("version", ["1.0.0", "0.0.1", "10.20.30", "1.0.0-beta.1", "1.0.0+build.7", "2.1.0-rc.1+sha.abc"])
def test_valid_versions(version):
    assert validate_version(version)


@pytest.mark.parametrize("version", ["", "1.0", "v1.0.0", "1.0.0.0", "a.b.c", "1.0.0-", "01.2.3", "1.02.3", "1.2.03", None])
def test_invalid_versions(version):
    assert not validate_version(version)


def test_parse_version():
    v = parse_version("2.5.1-beta")
    assert (v.major, v.minor, v.patch, v.prerelease) == (2, 5, 1, "beta")
    with pytest.raises(EvaluationFailed):
        parse_version("latest")


def test_compare_versions():
    assert compare_versions("2.1.0", "2.0.5") == 1
    assert compare_versions("2.0.5", "2.1.0") == -1
    assert compare_versions("1.10.0", "1.9.9") == 1
    assert compare_versions("1.0.0", "1.0.0+build") == 0
    assert compare_versions("1.0.0-alpha", "1.0.0") == -1
    assert compare_versions("1.0.0-alpha", "1.0.0-beta") == -1


@pytest.mark.parametrize("lower, higher", [
    ("1.0.0-alpha", "1.0.0-alpha.1"),
    ("1.0.0-alpha.1", "1.0.0-alpha.beta"),
    ("1.0.0-alpha.2", "1.0.0-alpha.10"),
    ("1.0.0-alpha.beta", "1.0.0-beta"),
    ("1.0.0-beta.2", "1.0.0-beta.11"),
    ("1.0.0-beta.11", "1.0.0-rc.1"),
    ("1.0.0-rc.1", "1.0.0"),
])
def test_prerelease_precedence(lower, higher):
    assert compare_versions(lower, higher) == -1
    assert compare_versions(higher, lower) == 1


def test_zero_is_a_valid_core_part():
    assert validate_version("0.0.0")
    assert parse_version("0.10.0").minor == 10


def test_update_shapes():
    assert is_patch_update("2.0.5", "2.0.6")
    assert not is_patch_update("2.0.5", "2.1.0")
    assert is_minor_or_patch_update("2.0.5", "2.1.0")
    assert not is_minor_or_patch_update("2.0.5", "3.0.0")
    assert is_major_update("2.0.5", "3.0.0")
    assert not is_major_update("2.0.5", "2.9.0")
