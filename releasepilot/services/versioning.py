"""Pure helpers for release branch names and version ordering. No I/O."""

import re
from typing import NamedTuple

import semver

# Skip the owner part of the head label, require the branch to start with
# "release", and keep everything else. The optional middle group carries the
# package name of a monorepo component.
VERSION_FROM_BRANCH_RE = re.compile(r"^.*:release-?([\w.-]*)-(v[0-9].*)$")

_DIGITS_RE = re.compile(r"\d+")
_PAD_WIDTH = 6


class BranchVersion(NamedTuple):
    prefix: str | None
    version: str


def parse_release_branch(head_label: str) -> BranchVersion | None:
    """Extract package prefix and raw version from ``owner:release-[pkg-]v1.2.3``.

    Returns None when the label is not a release branch.
    """
    match = VERSION_FROM_BRANCH_RE.match(head_label)
    if match is None or not match.group(2):
        return None
    return BranchVersion(prefix=match.group(1) or None, version=match.group(2))


def prefix_matches(requested: str | None, extracted: str | None) -> bool:
    """Both absent, or both present and equal."""
    if not requested and not extracted:
        return True
    return requested == extracted


def normalize_version(raw: str) -> str | None:
    """Return the canonical form of a semantic version, or None if it is not one.

    A single leading ``v`` and surrounding whitespace are accepted; build metadata
    is dropped from the result.
    """
    candidate = raw.strip()
    if candidate.startswith("v"):
        candidate = candidate[1:]
    try:
        parsed = semver.Version.parse(candidate)
    except (ValueError, TypeError):
        return None
    normalized = f"{parsed.major}.{parsed.minor}.{parsed.patch}"
    if parsed.prerelease:
        normalized += f"-{parsed.prerelease}"
    return normalized


def is_prerelease(version: str) -> bool:
    return "-" in version


def _pad_identifier(identifier: str) -> tuple[int, int | str]:
    if identifier.isdigit():
        return (0, int(identifier))
    # "beta2" and "beta10" would otherwise compare character by character.
    return (1, _DIGITS_RE.sub(lambda m: m.group().zfill(_PAD_WIDTH), identifier))


def version_sort_key(version: str) -> tuple:
    """Sort key implementing semver precedence with padded pre-release runs.

    Numeric runs inside pre-release identifiers are zero-padded before the
    lexical comparison so that ``1.0.0-rc10`` ranks above ``1.0.0-rc2``. A
    release ranks above any of its pre-releases.
    """
    parsed = semver.Version.parse(version)
    core = (parsed.major, parsed.minor, parsed.patch)
    if not parsed.prerelease:
        return (core, 1, ())
    return (core, 0, tuple(_pad_identifier(part) for part in parsed.prerelease.split(".")))


def latest_version(versions: list[str]) -> str | None:
    if not versions:
        return None
    return max(versions, key=version_sort_key)
