import pytest

from xcodetask.src.core.version_probe import (
    XcodeVersion,
    parse_xcode_version,
    probe_xcode_version,
)

from conftest import FakeRunner


class TestParseXcodeVersion:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("Xcode 15.2", XcodeVersion(15, 2, 0)),
            ("Xcode 9", XcodeVersion(9)),
            ("  Xcode 10.0.1  ", XcodeVersion(10, 0, 1)),
        ],
    )
    def test_parses_version_lines(self, line, expected) -> None:
        assert parse_xcode_version(line) == expected

    @pytest.mark.parametrize(
        "line", ["Build version 15C500c", "Xcode", "Xcode beta", "", "MyXcode 12"]
    )
    def test_other_lines_do_not_match(self, line) -> None:
        assert parse_xcode_version(line) is None


class TestXcodeVersion:
    def test_unknown_never_satisfies_gate(self) -> None:
        assert not XcodeVersion.UNKNOWN.is_known
        assert not XcodeVersion.UNKNOWN.at_least(0)
        assert str(XcodeVersion.UNKNOWN) == "unknown"

    def test_at_least_compares_major(self) -> None:
        assert XcodeVersion(9).at_least(9)
        assert XcodeVersion(15, 2).at_least(9)
        assert not XcodeVersion(8, 3).at_least(9)


class TestProbe:
    def test_first_matching_line_wins(self) -> None:
        runner = FakeRunner(version_output=["Xcode 14.3", "Xcode 15.0", "Build version x"])
        assert probe_xcode_version(runner, "/usr/bin/xcodebuild") == XcodeVersion(14, 3)
        assert runner.calls[0].args == ["-version"]

    def test_garbage_output_is_unknown(self) -> None:
        runner = FakeRunner(version_output=["something went sideways"])
        assert probe_xcode_version(runner, "/usr/bin/xcodebuild") is XcodeVersion.UNKNOWN
