import os
from pathlib import Path

import pytest

from xcodetask.src.core.inputs import SignMethod
from xcodetask.src.core.resources import KEYCHAIN_TO_DELETE
from xcodetask.src.core.task_runner import Failure, Success, XcodeTask

from conftest import FakeCertHandler, FakeProfiles, FakeRunner, archive_on_exec


@pytest.fixture(autouse=True)
def restore_developer_dir(monkeypatch):
    # setenv first so the variable set by the task is removed afterwards
    monkeypatch.setenv("DEVELOPER_DIR", "")
    monkeypatch.delenv("DEVELOPER_DIR")


def make_task(inputs, runner, run_state, cert_handler=None, profiles=None):
    return XcodeTask(
        inputs,
        runner=runner,
        cert_handler=cert_handler or FakeCertHandler(),
        profiles=profiles or FakeProfiles(),
        state=run_state,
    )


class TestBuild:
    def test_main_build_arguments(self, make_inputs, workdir, run_state) -> None:
        runner = FakeRunner()
        inputs = make_inputs(
            sign_method=SignMethod.ID,
            signing_identity="iPhone Developer",
            args="-allowProvisioningUpdates",
        )
        outcome = make_task(inputs, runner, run_state).run()

        assert outcome == Success()
        assert runner.calls[0].args == ["-version"]
        build = runner.builds()[0]
        out = workdir / "output"
        assert build.args == [
            "-sdk", "iphoneos",
            "-configuration", "Release",
            "-project", str(workdir / "App.xcodeproj"),
            "-scheme", "App",
            "build",
            f"DSTROOT={out / 'build.dst'}",
            f"OBJROOT={out / 'build.obj'}",
            f"SYMROOT={out / 'build.sym'}",
            f"SHARED_PRECOMPS_DIR={out / 'build.pch'}",
            "-allowProvisioningUpdates",
            "CODE_SIGN_IDENTITY=iPhone Developer",
        ]
        assert out.is_dir()

    def test_xcpretty_junit_pipe(self, make_inputs, run_state) -> None:
        runner = FakeRunner()
        make_task(make_inputs(use_xcpretty=True), runner, run_state).run()
        assert runner.builds()[0].pipe_to == ("/usr/bin/xcpretty", ["-r", "junit", "--no-color"])

    def test_developer_dir_exported(self, make_inputs, run_state) -> None:
        make_task(make_inputs(developer_dir="/Applications/Xcode_15.app"), FakeRunner(), run_state).run()
        assert os.environ["DEVELOPER_DIR"] == "/Applications/Xcode_15.app"

    def test_missing_workspace_fails(self, make_inputs, run_state) -> None:
        outcome = make_task(make_inputs(workspace_path="Nope.xcworkspace"), FakeRunner(), run_state).run()
        assert isinstance(outcome, Failure)
        assert outcome.exit_code == 1

    def test_build_failure_is_reported(self, make_inputs, run_state) -> None:
        runner = FakeRunner(fail_when=lambda args: "build" in args)
        outcome = make_task(make_inputs(), runner, run_state).run()
        assert isinstance(outcome, Failure)
        assert "65" in outcome.reason

    def test_unparseable_extra_args_fail_before_building(self, make_inputs, run_state) -> None:
        runner = FakeRunner()
        outcome = make_task(make_inputs(args='-derivedDataPath "dd'), runner, run_state).run()
        assert isinstance(outcome, Failure)
        assert outcome.reason.startswith("Unable to parse additional xcodebuild arguments")
        assert runner.builds() == []

    def test_version_recorded(self, make_inputs, run_state) -> None:
        task = make_task(make_inputs(), FakeRunner(version_output=["Xcode 16.1"]), run_state)
        task.run()
        assert task.xcode_version.major == 16


class TestPackaging:
    def test_simulator_never_archives(self, make_inputs, run_state) -> None:
        runner = FakeRunner()
        inputs = make_inputs(sdk="iphonesimulator", package_app=True)
        assert make_task(inputs, runner, run_state).run() == Success()
        assert runner.archive_calls() == []
        assert runner.export_calls() == []

    def test_package_disabled(self, make_inputs, run_state) -> None:
        runner = FakeRunner()
        make_task(make_inputs(package_app=False), runner, run_state).run()
        assert runner.archive_calls() == []

    def test_archive_and_export(self, make_inputs, workdir, run_state) -> None:
        runner = FakeRunner(on_exec=archive_on_exec({"App.app": "com.contoso.app"}))
        inputs = make_inputs(package_app=True, archive_path="archives", export_path="exports")
        task = make_task(inputs, runner, run_state)

        assert task.run() == Success()
        assert len(runner.archive_calls()) == 1
        export = runner.export_calls()[0]
        assert export.args[4] == str(workdir / "exports" / "_XcodeTaskExport_App")
        assert task.archive_result.bundle_paths == (workdir / "archives" / "App.xcarchive",)

    def test_missing_scheme_fails_packaging(self, make_inputs, run_state) -> None:
        outcome = make_task(make_inputs(package_app=True, scheme=None), FakeRunner(), run_state).run()
        assert isinstance(outcome, Failure)
        assert "scheme" in outcome.reason

    def test_auto_without_profile_warns(self, make_inputs, workdir, run_state) -> None:
        def on_exec(args):
            if "-archivePath" in args and "archive" in args:
                (workdir / "archives" / "App.xcarchive").mkdir(parents=True, exist_ok=True)

        runner = FakeRunner(on_exec=on_exec)
        task = make_task(make_inputs(package_app=True, archive_path="archives"), runner, run_state)
        assert task.run() == Success()
        assert "-exportOptionsPlist" not in runner.export_calls()[0].args
        assert task.warnings


class TestCleanup:
    @pytest.fixture()
    def file_signing(self, make_inputs, workdir):
        (workdir / "cert.p12").write_bytes(b"p12")
        (workdir / "app.mobileprovision").write_bytes(b"profile")
        return make_inputs(
            package_app=True,
            sign_method=SignMethod.FILE,
            p12=Path("cert.p12"),
            provisioning_profile=Path("app.mobileprovision"),
            remove_profile=True,
        )

    def test_keychain_deleted_when_archive_fails(self, file_signing, run_state) -> None:
        cert_handler = FakeCertHandler()
        profiles = FakeProfiles()
        runner = FakeRunner(fail_when=lambda args: "archive" in args)

        outcome = make_task(file_signing, runner, run_state, cert_handler, profiles).run()

        assert isinstance(outcome, Failure)
        assert len(cert_handler.deleted) == 1
        assert profiles.deleted == [profiles.uuid]
        assert run_state.load() == {}

    def test_keychain_deleted_when_import_fails(self, file_signing, run_state) -> None:
        cert_handler = FakeCertHandler()
        cert_handler.fail_install = True

        outcome = make_task(file_signing, FakeRunner(), run_state, cert_handler).run()

        assert outcome == Failure("security import failed with return code: 1")
        assert len(cert_handler.deleted) == 1
        assert run_state.load() == {}

    def test_resources_deleted_on_success(self, file_signing, run_state) -> None:
        cert_handler = FakeCertHandler()
        runner = FakeRunner(on_exec=archive_on_exec({"App.app": "com.contoso.app"}))
        task = make_task(file_signing, runner, run_state, cert_handler)

        assert task.run() == Success()
        assert len(cert_handler.deleted) == 1
        # Archive carries the temporary keychain too
        assert any(
            a.startswith("OTHER_CODE_SIGN_FLAGS=--keychain=") for a in runner.archive_calls()[0].args
        )

    def test_failed_keychain_deletion_only_warns(self, file_signing, run_state) -> None:
        cert_handler = FakeCertHandler()
        cert_handler.fail_delete = True
        runner = FakeRunner(on_exec=archive_on_exec({"App.app": "com.contoso.app"}))
        task = make_task(file_signing, runner, run_state, cert_handler)

        assert task.run() == Success()
        assert any("keychain" in w for w in task.warnings)
        assert run_state.get(KEYCHAIN_TO_DELETE)
