import argparse
import sys
from pathlib import Path
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from xcodetask.arguments import add_build_arguments
from xcodetask.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class XcodeTaskHelpFormatter(RichHelpFormatter):
    """Help formatter for the xcodetask CLI with rich styling."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )

    def start_section(self, heading):
        heading_text = Text(heading, style="title")
        super().start_section(str(heading_text))


def display_banner():
    """Display the xcodetask banner."""
    console = Console()
    banner = get_banner_text()

    version_info = Text(f"v{__version__}", style="version")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(banner, "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_cli_parser():
    parser = argparse.ArgumentParser(
        prog="xcodetask",
        description=f"xcodetask: {APP_DESCRIPTION}",
        formatter_class=XcodeTaskHelpFormatter,
        add_help=True,
    )
    parser.add_argument(
        "--version", action="version", version=f"xcodetask {__version__}"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file with [inputs] defaults [default: ~/.xcodetask/config.toml]",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Print diagnostic output [default: disabled]"
    )

    subparsers = parser.add_subparsers(dest="command")

    build_parser = subparsers.add_parser(
        "build",
        help="Build, sign, archive and export",
        formatter_class=XcodeTaskHelpFormatter,
        description="Run xcodebuild with signing, then archive and export the app.",
    )
    add_build_arguments(build_parser)

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Remove signing leftovers of an interrupted run",
        formatter_class=XcodeTaskHelpFormatter,
        description="Delete the temporary keychain and provisioning profile recorded by a run that did not finish.",
    )
    cleanup_parser.add_argument(
        "--cwd",
        type=Path,
        help="Working directory of the build run [default: current directory]",
    )
    return parser


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    parser = create_cli_parser()
    args = parser.parse_args(argv)

    if args.debug:
        from xcodetask.logger import set_debug

        set_debug(True)

    if args.command == "build":
        from xcodetask.commands.build import run_build_command

        return run_build_command(args)
    elif args.command == "cleanup":
        from xcodetask.commands.cleanup import run_cleanup_command

        return run_cleanup_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
