"""
Semantic version helpers for channel advancement.
"""
import re
from typing import NamedTuple, Optional

from ..errors import EvaluationFailed

SEMVER_RE = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?'
    r'(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'
)


class Version(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None


def validate_version(version: str) -> bool:
    """True for MAJOR.MINOR.PATCH with optional -prerelease and +build."""
    return bool(version) and SEMVER_RE.match(str(version).strip()) is not None


def parse_version(version: str) -> Version:
    match = SEMVER_RE.match(str(version or '').strip())
    if not match:
        raise EvaluationFailed(f"Invalid semantic version '{version}'")
    major, minor, patch, prerelease, _build = match.groups()
    return Version(int(major), int(minor), int(patch), prerelease)


def compare_versions(a: str, b: str) -> int:
    """
    Compare two versions, returning -1, 0 or 1.

    Build metadata is ignored and a pre-release sorts before its release.
    Pre-release tags compare identifier by identifier: numeric ones as
    numbers and below alphanumeric ones, with a shorter tag first when one
    is a prefix of the other.
    """
    va, vb = parse_version(a), parse_version(b)
    core_a, core_b = va[:3], vb[:3]
    if core_a != core_b:
        return -1 if core_a < core_b else 1

    if va.prerelease == vb.prerelease:
        return 0
    if va.prerelease is None:
        return 1
    if vb.prerelease is None:
        return -1
    return _compare_prerelease(va.prerelease, vb.prerelease)


def _prerelease_key(tag: str) -> list:
    return [(0, int(part), '') if part.isdigit() else (1, 0, part) for part in tag.split('.')]


def _compare_prerelease(a: str, b: str) -> int:
    key_a, key_b = _prerelease_key(a), _prerelease_key(b)
    if key_a == key_b:
        return 0
    return -1 if key_a < key_b else 1


def is_patch_update(current: str, candidate: str) -> bool:
    """Same major and minor."""
    c, n = parse_version(current), parse_version(candidate)
    return c.major == n.major and c.minor == n.minor


def is_minor_or_patch_update(current: str, candidate: str) -> bool:
    """Same major."""
    return parse_version(current).major == parse_version(candidate).major


def is_major_update(current: str, candidate: str) -> bool:
    return parse_version(candidate).major > parse_version(current).major
