import sys

from dotenv import load_dotenv

from xcodetask.arguments import create_task_inputs
from xcodetask.logger import get_console
from xcodetask.src.core.inputs import TaskInputs
from xcodetask.src.core.task_runner import XcodeTask
from xcodetask.src.utils.config_loader import load_config


def print_configuration_summary(console, inputs: TaskInputs) -> None:
    """Print the resolved inputs, leaving out secrets."""
    console.print("\n[bold blue]Build Configuration:[/]")
    console.print(f"[cyan]Working directory:[/] {inputs.cwd}")
    if inputs.workspace_path:
        console.print(f"[cyan]Workspace:[/] {inputs.workspace_path}")
    for label, value in (
        ("SDK", inputs.sdk),
        ("Configuration", inputs.configuration),
        ("Scheme", inputs.scheme),
    ):
        if value:
            console.print(f"[cyan]{label}:[/] {value}")
    console.print(f"[cyan]Actions:[/] {' '.join(inputs.actions)}")
    console.print(f"[cyan]Signing:[/] {inputs.sign_method.value}")
    if inputs.automatic_signing:
        console.print("  • Automatic signing")
    if inputs.should_package:
        console.print(f"[cyan]Export options:[/] {inputs.export_options.value}")


def main(parsed_args=None) -> int:
    """Run the build task from parsed CLI arguments."""
    console = get_console()

    # Inputs may come from a .env file in CI checkouts
    load_dotenv()

    try:
        config = load_config(getattr(parsed_args, "config", None))
        inputs = create_task_inputs(parsed_args, config)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    print_configuration_summary(console, inputs)
    outcome = XcodeTask(inputs).run()
    return outcome.exit_code


def run_build_command(args):
    """Entry point for the build command from CLI"""
    return main(parsed_args=args)


if __name__ == "__main__":
    from xcodetask.cli import main as cli_main

    sys.exit(cli_main())
