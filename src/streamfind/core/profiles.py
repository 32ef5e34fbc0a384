"""Search profiles: named bundles of window and reporting settings.

Profiles never change match semantics, only how much memory a search uses and
how results are reported (limits, context bytes, text encoding).
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from streamfind.core.io import StreamfindError
from streamfind.core.window import DEFAULT_CAPACITY


class ProfileError(StreamfindError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class SearchProfile:
    """Configuration for a search run.

    Attributes:
        name: Profile identifier
        min_capacity: Lower bound on window capacity in bytes
        max_matches: Stop after this many matches (None = no limit)
        context: Bytes of surrounding data shown on each side of a match
        encoding: Encoding used to turn text patterns into bytes
    """

    name: str
    min_capacity: int = DEFAULT_CAPACITY
    max_matches: int | None = None
    context: int = 16
    encoding: str = "utf-8"


# ============================================================================
# PROFILE DEFINITIONS
# ============================================================================

DEFAULT_PROFILE = SearchProfile(name="default")

BULK_PROFILE = SearchProfile(
    name="bulk",
    min_capacity=64 * 1024,  # Fewer reads on large local files
    context=0,
)

PREVIEW_PROFILE = SearchProfile(
    name="preview",
    max_matches=100,  # Quick look at the first hits
    context=32,
)

PROFILES = {
    "default": DEFAULT_PROFILE,
    "bulk": BULK_PROFILE,
    "preview": PREVIEW_PROFILE,
}


def get_profile(name: str) -> SearchProfile:
    """Get search profile by name.

    Raises:
        ProfileError: If profile name not found
    """
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise ProfileError([f"unknown profile '{name}' (known: {known})"]) from None


def _check_int(
    data: dict[str, Any], key: str, minimum: int, errors: list[str], *, optional: bool = False
) -> None:
    if key not in data:
        return
    value = data[key]
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"{key} must be an integer")
    elif value < minimum:
        errors.append(f"{key} must be >= {minimum}")


def load_profile(text: str, *, base: SearchProfile = DEFAULT_PROFILE) -> SearchProfile:
    """Parse a YAML profile. Keys left out keep the value from `base`.

    Example::

        name: logs
        min_capacity: 65536
        max_matches: 500
        context: 24
        encoding: latin-1
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ProfileError([f"YAML parse error: {e}"]) from None

    if not isinstance(data, dict):
        raise ProfileError(["Top-level YAML must be a mapping of profile settings."])

    errors: list[str] = []
    known = {f.name for f in fields(SearchProfile)}
    for key in data:
        if key not in known:
            errors.append(f"unknown setting '{key}'")

    if "name" in data and not isinstance(data["name"], str):
        errors.append("name must be a string")
    _check_int(data, "min_capacity", 1, errors)
    _check_int(data, "max_matches", 1, errors, optional=True)
    _check_int(data, "context", 0, errors)
    if "encoding" in data:
        enc = data["encoding"]
        if not isinstance(enc, str):
            errors.append("encoding must be a string")
        else:
            try:
                codecs.lookup(enc)
            except LookupError:
                errors.append(f"unknown encoding '{enc}'")

    if errors:
        raise ProfileError(errors)

    return replace(base, **data)


def load_profile_file(path: str | Path, *, base: SearchProfile = DEFAULT_PROFILE) -> SearchProfile:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ProfileError([f"profile file not found: {p}"]) from None
    except (OSError, UnicodeDecodeError) as e:
        raise ProfileError([f"cannot read profile file {p}: {e}"]) from e
    # Unnamed profile files are named after the file.
    return load_profile(text, base=replace(base, name=p.stem))
