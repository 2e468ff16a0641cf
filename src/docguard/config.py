"""Process-wide settings for the mutation pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from docguard.schema.types import CleanOptions

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass
class Settings:
    """Global defaults, the lowest level of clean option precedence.

    Attributes:
        clean: Global clean defaults (all on unless overridden)
        default_context: Validation context name used when callers give none
    """

    clean: CleanOptions = field(default_factory=CleanOptions.defaults)
    default_context: str = "default"

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from environment variables.

        Reads:
            DOCGUARD_FILTER, DOCGUARD_AUTO_CONVERT, DOCGUARD_TRIM_STRINGS,
            DOCGUARD_REMOVE_EMPTY_STRINGS: "1/true/yes/on" or "0/false/no/off"
            DOCGUARD_VALIDATION_CONTEXT: default validation context name
        Unset variables keep the built-in default.
        """
        overrides = CleanOptions(
            filter=_env_bool("DOCGUARD_FILTER"),
            auto_convert=_env_bool("DOCGUARD_AUTO_CONVERT"),
            trim_strings=_env_bool("DOCGUARD_TRIM_STRINGS"),
            remove_empty_strings=_env_bool("DOCGUARD_REMOVE_EMPTY_STRINGS"),
        )
        return cls(
            clean=CleanOptions.defaults().override(overrides),
            default_context=os.environ.get("DOCGUARD_VALIDATION_CONTEXT") or "default",
        )
