import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from xcodetask.logger import debug, get_console
from xcodetask.src.core.build_args import BuildConfiguration, workspace_args
from xcodetask.src.core.errors import SchemeRequiredError, WorkspaceOrProjectRequiredError
from xcodetask.src.core.export_options import ExportOptions, resolve_export_options
from xcodetask.src.core.inputs import TaskInputs
from xcodetask.src.core.signing import SigningResult
from xcodetask.src.core.version_probe import XcodeVersion
from xcodetask.src.ipa.provisioning_profile import ProvisioningProfiles
from xcodetask.src.utils.find_match import find_match
from xcodetask.src.utils.process import PipeTarget, ProcessRunner

ARCHIVE_EXTENSION = ".xcarchive"
IPA_EXTENSION = ".ipa"
EXPORT_NAME_PREFIX = "_XcodeTaskExport_"


@dataclass(frozen=True)
class ArchiveResult:
    archive_path: Path
    archive_root: Path
    bundle_paths: Tuple[Path, ...]


def _absolute(working_dir: Path, value) -> Path:
    path = Path(value)
    return path if path.is_absolute() else working_dir / path


def resolve_archive_path(
    working_dir: Path, archive_path: str, scheme: str
) -> Tuple[Path, Path]:
    """Return the ``-archivePath`` value and the folder archives are searched in.

    A path not ending in ``.xcarchive`` is a folder; the scheme names the
    archive inside it.
    """
    if archive_path.endswith(ARCHIVE_EXTENSION):
        path = _absolute(working_dir, archive_path)
        return path, path.parent
    root = _absolute(working_dir, archive_path)
    return root / scheme, root


def resolve_export_path(working_dir: Path, export_path: str, scheme: str) -> Path:
    if export_path.endswith(IPA_EXTENSION):
        return _absolute(working_dir, export_path)
    return _absolute(working_dir, export_path) / f"{EXPORT_NAME_PREFIX}{scheme}"


class ArchiveExportOrchestrator:
    """Archives the scheme and exports every archive it produced"""

    def __init__(
        self,
        runner: ProcessRunner,
        xcodebuild: str,
        profiles: ProvisioningProfiles,
        working_dir: Path,
        xcpretty: Optional[str] = None,
    ):
        self.runner = runner
        self.xcodebuild = xcodebuild
        self.profiles = profiles
        self.working_dir = working_dir
        self.xcpretty = xcpretty
        self.console = get_console()
        self.warnings: List[str] = []

    @property
    def _pipe(self) -> Optional[PipeTarget]:
        if self.xcpretty:
            return (self.xcpretty, ["--no-color"])
        return None

    def run(
        self,
        inputs: TaskInputs,
        config: BuildConfiguration,
        signing: SigningResult,
        xcode_version: XcodeVersion,
    ) -> ArchiveResult:
        if not config.scheme:
            raise SchemeRequiredError()
        if not config.workspace_path:
            raise WorkspaceOrProjectRequiredError()

        result = self.archive(inputs, config, signing)
        if not result.bundle_paths:
            debug(f"No archives found in {result.archive_root}, skipping export")
            return result

        self.export(inputs, config, result, xcode_version)
        return result

    def archive(
        self, inputs: TaskInputs, config: BuildConfiguration, signing: SigningResult
    ) -> ArchiveResult:
        archive_path, archive_root = resolve_archive_path(
            self.working_dir, inputs.archive_path, config.scheme
        )

        args = workspace_args(config)
        args += ["-scheme", config.scheme, "archive"]
        if config.sdk:
            args += ["-sdk", config.sdk]
        if config.configuration:
            args += ["-configuration", config.configuration]
        args += ["-archivePath", str(archive_path)]
        args += signing.build_settings()

        self.console.log(f"[bold blue]Archiving {config.scheme}[/]")
        self.runner.exec(self.xcodebuild, args, pipe_to=self._pipe)

        bundles = find_match(archive_root, f"**/*{ARCHIVE_EXTENSION}")
        debug(f"{len(bundles)} archives found for exporting.")
        return ArchiveResult(archive_path, archive_root, tuple(bundles))

    def export(
        self,
        inputs: TaskInputs,
        config: BuildConfiguration,
        result: ArchiveResult,
        xcode_version: XcodeVersion,
    ) -> ExportOptions:
        options = resolve_export_options(
            inputs,
            result.bundle_paths[0],
            xcode_version,
            self.profiles,
            self.working_dir,
        )
        self.warnings.extend(options.warnings)

        export_path = resolve_export_path(
            self.working_dir, inputs.export_path, config.scheme
        )
        # Export path must not exist
        if export_path.is_dir() and not export_path.is_symlink():
            shutil.rmtree(export_path)
        elif export_path.exists() or export_path.is_symlink():
            export_path.unlink()

        pending = list(result.bundle_paths)
        while pending:
            bundle = pending.pop()
            args = ["-exportArchive", "-archivePath", str(bundle)]
            args += ["-exportPath", str(export_path)]
            if options.plist_path:
                args += ["-exportOptionsPlist", str(options.plist_path)]

            self.console.log(f"[bold blue]Exporting archive:[/] {bundle}")
            self.runner.exec(self.xcodebuild, args, pipe_to=self._pipe)

        self.console.log(f"[green]Exported to:[/] {export_path}")
        return options
