"""Engine version banners and the features each engine release added."""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# First dotted numeric run, e.g. "1.5.0" in "Docker version 1.5.0, build a8a31ef",
# plus whatever qualifier is glued to it ("17.06.0-ce")
VERSION_PATTERN = re.compile(r'(\d+(?:\.\d+)+)([-+~][0-9A-Za-z.+~-]*)?')


@dataclass(frozen=True, order=True)
class EngineVersion:
    """A (major, minor, patch) engine version. The qualifier does not take part in ordering."""
    major: int
    minor: int = 0
    patch: int = 0
    qualifier: str = field(default='', compare=False)

    @classmethod
    def of(cls, text):
        """Build a version from a bare dotted string such as "1.10" or "17.06.0-ce"."""
        match = VERSION_PATTERN.fullmatch(text.strip())
        if not match:
            raise ValueError(f"Not a version number: {text!r}")
        return cls._from_match(match)

    @classmethod
    def _from_match(cls, match):
        numbers = [int(part) for part in match.group(1).split('.')][:3]
        numbers += [0] * (3 - len(numbers))
        return cls(numbers[0], numbers[1], numbers[2], match.group(2) or '')

    def is_older_than(self, other):
        if isinstance(other, str):
            other = EngineVersion.of(other)
        return self < other

    def __str__(self):
        return f"{self.major}.{self.minor}.{self.patch}{self.qualifier}"


def parse_version_number(banner: Optional[str]) -> Optional[EngineVersion]:
    """Extract the engine version from a free-text banner.

    Returns ``None`` when the banner holds no dotted number; callers should then
    assume the oldest engine they support.
    """
    if not banner:
        return None
    match = VERSION_PATTERN.search(banner)
    if not match:
        logger.debug("No version number in banner %r", banner)
        return None
    return EngineVersion._from_match(match)


# capability -> first engine release that has it
CAPABILITIES = {
    'stop_time': EngineVersion(1, 0, 0),
    'labels': EngineVersion(1, 6, 0),
    'mounts': EngineVersion(1, 8, 0),
}


def supports(version: Optional[EngineVersion], capability: str) -> bool:
    """Check a gated capability; an unknown version supports none of them."""
    minimum = CAPABILITIES[capability]
    if version is None:
        return False
    return not version.is_older_than(minimum)
