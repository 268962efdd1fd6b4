"""Framework version parsing and comparison."""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

_VERSION_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?")


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A framework version such as ``v3.1.10.3349``."""
    major: int
    minor: int = 0
    bugfix: int = 0
    build: Optional[int] = None
    origin: str = ""

    @classmethod
    def parse(cls, value: str) -> "Version":
        """Parse a version string, ignoring a leading ``v`` and any suffix.

        Raises:
            ValueError: If the string contains no version number.
        """
        match = _VERSION_PATTERN.search(value or "")
        if not match:
            raise ValueError(f"Not a version string: {value!r}")
        major, minor, bugfix, build = match.groups()
        return cls(
            major=int(major),
            minor=int(minor or 0),
            bugfix=int(bugfix or 0),
            build=int(build) if build is not None else None,
            origin=value,
        )

    def _key(self):
        return (self.major, self.minor, self.bugfix, self.build or 0)

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.bugfix}"
        return f"{base}.{self.build}" if self.build is not None else base


V3_0_0 = Version(3, 0, 0)
V3_1_0 = Version(3, 1, 0)
V3_1_7 = Version(3, 1, 7)
