"""
Library version information (semantic versioning).

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from typing import NamedTuple


class Version(NamedTuple):
    """Semantic version numbers."""
    major: int  # API-breaking changes
    minor: int  # Feature updates
    patch: int  # Bugfixes

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


VERSION = Version(1, 2, 0)


def get_version() -> Version:
    """Return the installed library version."""
    return VERSION
