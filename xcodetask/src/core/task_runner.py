import os
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from rich.markup import escape

from xcodetask.logger import debug, get_console, is_debug
from xcodetask.src.ci.test_publisher import TestResultPublisher, publish_test_results
from xcodetask.src.core.archive_export import ArchiveExportOrchestrator, ArchiveResult
from xcodetask.src.core.build_args import (
    assemble_build_args,
    create_build_configuration,
    prepare_output_dir,
)
from xcodetask.src.core.cert_handler import CertHandler
from xcodetask.src.core.errors import XcodeTaskError
from xcodetask.src.core.inputs import TaskInputs
from xcodetask.src.core.resources import RunState, TemporaryResources, get_state_path
from xcodetask.src.core.signing import SigningResolver, SigningResult
from xcodetask.src.core.version_probe import XcodeVersion, probe_xcode_version
from xcodetask.src.ipa.provisioning_profile import ProvisioningProfiles
from xcodetask.src.utils.process import ProcessRunner


@dataclass(frozen=True)
class Success:
    message: str = "Xcode task succeeded"

    @property
    def exit_code(self) -> int:
        return 0


@dataclass(frozen=True)
class Failure:
    reason: str

    @property
    def exit_code(self) -> int:
        return 1


RunOutcome = Union[Success, Failure]


class XcodeTask:
    """One run of the task: build, sign, archive and export.

    Temporary keychains and profiles created along the way are deleted when
    the run ends, whatever the outcome.
    """

    def __init__(
        self,
        inputs: TaskInputs,
        runner: Optional[ProcessRunner] = None,
        cert_handler: Optional[CertHandler] = None,
        profiles: Optional[ProvisioningProfiles] = None,
        state: Optional[RunState] = None,
        publisher: Optional[TestResultPublisher] = None,
    ):
        self.inputs = inputs
        self.working_dir = Path(inputs.cwd).resolve()
        self.runner = runner or ProcessRunner(cwd=self.working_dir)
        self.cert_handler = cert_handler or CertHandler()
        self.profiles = profiles or ProvisioningProfiles()
        self.state = state or RunState(get_state_path(self.working_dir))
        self.publisher = publisher
        self.console = get_console()

        self.warnings: List[str] = []
        self.xcode_version: XcodeVersion = XcodeVersion.UNKNOWN
        self.signing: Optional[SigningResult] = None
        self.archive_result: Optional[ArchiveResult] = None

    def run(self) -> RunOutcome:
        resources = TemporaryResources(self.state)
        try:
            with resources:
                self._run(resources)
            outcome = Success()
        except XcodeTaskError as e:
            outcome = Failure(str(e))
        except Exception as e:
            if is_debug():
                debug(traceback.format_exc())
            outcome = Failure(f"{type(e).__name__}: {e}")
        finally:
            self.warnings.extend(resources.warnings)

        if isinstance(outcome, Success):
            self.console.print(f"[bold green]✓ {outcome.message}[/]")
        else:
            self.console.print(f"[red]Error:[/] {escape(outcome.reason)}")
        return outcome

    def _run(self, resources: TemporaryResources) -> None:
        inputs = self.inputs

        if inputs.developer_dir:
            os.environ["DEVELOPER_DIR"] = inputs.developer_dir

        xcodebuild = self.runner.which("xcodebuild")
        debug(f"Tool selected: {xcodebuild}")

        output_dir = Path(inputs.output_pattern)
        if not output_dir.is_absolute():
            output_dir = self.working_dir / output_dir
        prepare_output_dir(output_dir)

        config = create_build_configuration(
            working_dir=self.working_dir,
            output_dir=output_dir,
            actions=inputs.actions,
            workspace_pattern=inputs.workspace_path,
            sdk=inputs.sdk,
            configuration=inputs.configuration,
            scheme=inputs.scheme,
            extra_args=inputs.args,
        )
        self.warnings.extend(config.warnings)

        self.xcode_version = probe_xcode_version(self.runner, xcodebuild)

        resolver = SigningResolver(
            self.cert_handler, self.profiles, resources, self.working_dir
        )
        self.signing = resolver.resolve(inputs)

        xcpretty = self.runner.which("xcpretty") if inputs.use_xcpretty else None
        pipe = (xcpretty, ["-r", "junit", "--no-color"]) if xcpretty else None

        build_args = assemble_build_args(config) + self.signing.build_settings()
        self.runner.exec(xcodebuild, build_args, pipe_to=pipe)

        if inputs.publish_junit_results:
            self.warnings.extend(
                publish_test_results(self.working_dir, bool(xcpretty), self.publisher)
            )

        if inputs.should_package:
            orchestrator = ArchiveExportOrchestrator(
                self.runner,
                xcodebuild,
                self.profiles,
                self.working_dir,
                xcpretty=xcpretty,
            )
            try:
                self.archive_result = orchestrator.run(
                    inputs, config, self.signing, self.xcode_version
                )
            finally:
                self.warnings.extend(orchestrator.warnings)
