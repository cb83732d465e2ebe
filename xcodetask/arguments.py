import argparse
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional
from rich_argparse import RawDescriptionRichHelpFormatter

from xcodetask.src.core.inputs import ExportOptionsMode, SignMethod, TaskInputs
from xcodetask.src.utils.config_loader import get_env_input, get_input_defaults, parse_bool

BOOL_INPUTS = {
    "use_xcpretty",
    "package_app",
    "remove_profile",
    "unlock_default_keychain",
    "automatic_signing",
    "publish_junit_results",
}
PATH_INPUTS = {"cwd", "p12", "provisioning_profile", "export_options_plist"}


def create_parser():
    """Create and return an argument parser with build arguments."""
    parser = argparse.ArgumentParser(
        prog="xcodetask",
        description="Build, sign, archive and export an Xcode project",
        formatter_class=RawDescriptionRichHelpFormatter,
    )
    add_build_arguments(parser)
    return parser


def _flag(group, name: str, help: str):
    group.add_argument(
        f"--{name}",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=help,
    )


def add_build_arguments(parser):
    """Add all task inputs to an existing parser.

    Every option defaults to None so values from the environment and the
    config file can fill the gaps.
    """
    paths = parser.add_argument_group("Tooling and paths")
    paths.add_argument(
        "--developer-dir",
        help="Xcode developer directory, exported as DEVELOPER_DIR [default: selected Xcode]",
    )
    paths.add_argument("--cwd", type=Path, help="Working directory [default: current directory]")
    paths.add_argument(
        "--output-pattern",
        help="Build output directory, relative to the working directory [default: output]",
    )
    paths.add_argument(
        "--workspace-path",
        help="Workspace or project path, glob patterns allowed [default: none]",
    )

    build = parser.add_argument_group("Build")
    build.add_argument("--sdk", help="SDK to build against, e.g. iphoneos")
    build.add_argument("--configuration", help="Build configuration, e.g. Release")
    build.add_argument("--scheme", help="Scheme to build")
    _flag(build, "use-xcpretty", "Pipe xcodebuild output through xcpretty [default: disabled]")
    build.add_argument(
        "--actions",
        help="Space separated xcodebuild actions [default: build]",
    )
    _flag(build, "package-app", "Archive and export an .ipa [default: enabled]")
    build.add_argument("--args", help="Additional xcodebuild arguments")

    signing = parser.add_argument_group("Signing")
    signing.add_argument(
        "--sign-method",
        choices=[m.value for m in SignMethod],
        help="Sign using certificate files or an installed identity [default: none]",
    )
    signing.add_argument("--p12", type=Path, help="P12 certificate file (file method)")
    signing.add_argument("--p12-password", help="Password of the P12 certificate")
    signing.add_argument(
        "--provisioning-profile", type=Path, help="Provisioning profile file (file method)"
    )
    _flag(signing, "remove-profile", "Remove the installed profile after the build [default: disabled]")
    _flag(
        signing,
        "unlock-default-keychain",
        "Unlock the default keychain before building (id method) [default: disabled]",
    )
    signing.add_argument("--default-keychain-password", help="Password of the default keychain")
    signing.add_argument("--signing-identity", help="Signing identity (id method)")
    signing.add_argument(
        "--provisioning-profile-uuid", help="Installed provisioning profile UUID (id method)"
    )
    _flag(signing, "automatic-signing", "Let Xcode manage signing [default: disabled]")
    signing.add_argument("--team-id", help="Development team used with automatic signing")

    package = parser.add_argument_group("Archive and export")
    package.add_argument("--archive-path", help="Archive file or folder [default: output]")
    package.add_argument(
        "--export-options",
        choices=[m.value for m in ExportOptionsMode],
        help="How export options are determined [default: auto]",
    )
    package.add_argument("--export-method", help="Export method (specify mode)")
    package.add_argument("--export-team-id", help="Export team id (specify mode)")
    package.add_argument(
        "--export-options-plist", type=Path, help="Export options plist (plist mode)"
    )
    package.add_argument("--export-path", help="Exported .ipa file or folder [default: output]")

    _flag(
        parser,
        "publish-junit-results",
        "Publish xcpretty's JUnit report, requires --use-xcpretty [default: disabled]",
    )


def _convert(name: str, value: Any) -> Any:
    if name in BOOL_INPUTS:
        return parse_bool(value)
    if name in PATH_INPUTS:
        return Path(value)
    if name == "actions":
        if isinstance(value, str):
            return value.split()
        return [str(a) for a in value]
    if name == "sign_method":
        return SignMethod(value)
    if name == "export_options":
        return ExportOptionsMode(value)
    return str(value)


def create_task_inputs(args, config: Optional[Dict[str, Any]] = None) -> TaskInputs:
    """Merge CLI arguments, XCODETASK_* variables and config defaults into TaskInputs"""
    defaults = get_input_defaults(config or {})
    values = {}
    for f in fields(TaskInputs):
        value = getattr(args, f.name, None)
        if value is None:
            value = get_env_input(f.name)
        if value is None:
            value = defaults.get(f.name)
        if value is None:
            continue
        values[f.name] = _convert(f.name, value)
    return TaskInputs(**values)
