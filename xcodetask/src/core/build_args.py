import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from xcodetask.logger import debug, get_console, warning
from xcodetask.src.core.errors import (
    ActionsRequiredError,
    ExtraArgumentsError,
    WorkspaceNotFoundError,
)
from xcodetask.src.utils.find_match import find_match

# xcodebuild writes an invalid archive when build products are redirected
OUTPUT_REDIRECTS = (
    ("DSTROOT", "build.dst"),
    ("OBJROOT", "build.obj"),
    ("SYMROOT", "build.sym"),
    ("SHARED_PRECOMPS_DIR", "build.pch"),
)


@dataclass(frozen=True)
class BuildConfiguration:
    """Everything needed to assemble the main xcodebuild invocation"""

    output_dir: Path
    actions: Tuple[str, ...]
    sdk: Optional[str] = None
    configuration: Optional[str] = None
    scheme: Optional[str] = None
    workspace_path: Optional[Path] = None
    is_project: bool = False
    extra_args: Optional[str] = None
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def archives(self) -> bool:
        return "archive" in self.actions


def is_project_path(path) -> bool:
    return str(path).strip().lower().endswith(".xcodeproj")


def resolve_workspace(working_dir: Path, pattern: str) -> Tuple[Path, List[str]]:
    """Find the workspace or project matching ``pattern``.

    Returns the chosen path and any warnings raised while choosing it.
    """
    matches = find_match(working_dir, pattern)
    debug(f"Found {len(matches)} workspaces matching.")

    if not matches:
        raise WorkspaceNotFoundError(pattern)

    warnings = []
    if len(matches) > 1:
        message = f"Multiple workspace matches were found. The first match will be used: {matches[0]}"
        warning(message)
        warnings.append(message)
    return matches[0], warnings


def create_build_configuration(
    working_dir: Path,
    output_dir: Path,
    actions: Sequence[str],
    workspace_pattern: Optional[str] = None,
    sdk: Optional[str] = None,
    configuration: Optional[str] = None,
    scheme: Optional[str] = None,
    extra_args: Optional[str] = None,
) -> BuildConfiguration:
    actions = tuple(a for a in actions if a and a.strip())
    if not actions:
        raise ActionsRequiredError()

    workspace = None
    warnings: List[str] = []
    if workspace_pattern and workspace_pattern.strip():
        workspace, warnings = resolve_workspace(working_dir, workspace_pattern)

    return BuildConfiguration(
        output_dir=output_dir,
        actions=actions,
        sdk=sdk or None,
        configuration=configuration or None,
        scheme=scheme or None,
        workspace_path=workspace,
        is_project=bool(workspace) and is_project_path(workspace),
        extra_args=extra_args or None,
        warnings=tuple(warnings),
    )


def workspace_args(config: BuildConfiguration) -> List[str]:
    if not config.workspace_path:
        return []
    flag = "-project" if config.is_project else "-workspace"
    return [flag, str(config.workspace_path)]


def assemble_build_args(config: BuildConfiguration) -> List[str]:
    """Ordered argument list of the main build, without signing overrides"""
    args: List[str] = []
    if config.sdk:
        args += ["-sdk", config.sdk]
    if config.configuration:
        args += ["-configuration", config.configuration]
    args += workspace_args(config)
    if config.scheme:
        args += ["-scheme", config.scheme]
    args += list(config.actions)

    if not config.archives:
        for setting, folder in OUTPUT_REDIRECTS:
            args.append(f"{setting}={config.output_dir / folder}")

    if config.extra_args:
        try:
            args += shlex.split(config.extra_args)
        except ValueError as e:
            raise ExtraArgumentsError(config.extra_args, str(e)) from e
    return args


def prepare_output_dir(output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    get_console().log(f"[blue]Output directory:[/] {output_dir}")
    return output_dir
