import re
from dataclasses import dataclass
from typing import ClassVar, Optional

from xcodetask.logger import debug, get_console
from xcodetask.src.utils.process import ProcessRunner

# "Xcode 15.2", "Xcode 9", "  Xcode 10.0.1 "
_VERSION_LINE = re.compile(r"^\s*Xcode\s+(\d+)(?:\.(\d+))?(?:\.(\d+))?\s*$")


@dataclass(frozen=True)
class XcodeVersion:
    """Xcode version reported by ``xcodebuild -version``.

    ``major`` is None for the UNKNOWN sentinel, used when the output could not
    be parsed. An unknown version never satisfies ``at_least``.
    """

    major: Optional[int]
    minor: int = 0
    patch: int = 0

    UNKNOWN: ClassVar["XcodeVersion"]

    @property
    def is_known(self) -> bool:
        return self.major is not None

    def at_least(self, major: int) -> bool:
        return self.is_known and self.major >= major

    def __str__(self) -> str:
        if not self.is_known:
            return "unknown"
        return f"{self.major}.{self.minor}.{self.patch}"


XcodeVersion.UNKNOWN = XcodeVersion(major=None)


def parse_xcode_version(line: str) -> Optional[XcodeVersion]:
    """Parse one line of ``xcodebuild -version`` output, None if it doesn't match"""
    match = _VERSION_LINE.match(line)
    if not match:
        return None
    major, minor, patch = match.groups()
    return XcodeVersion(int(major), int(minor or 0), int(patch or 0))


def probe_xcode_version(runner: ProcessRunner, xcodebuild: str) -> XcodeVersion:
    """Run ``xcodebuild -version`` and return the first parsed version"""
    found = []

    def on_line(line: str) -> None:
        if found:
            return
        version = parse_xcode_version(line)
        debug(f"version line = {line!r}, parsed = {version}")
        if version:
            found.append(version)

    runner.exec(xcodebuild, ["-version"], on_stdout=on_line)

    if not found:
        get_console().log(
            "[yellow]Could not determine the Xcode version from xcodebuild output"
        )
        return XcodeVersion.UNKNOWN

    get_console().log(f"[blue]Xcode version:[/] {found[0]}")
    return found[0]
