"""
Shared pytest fixtures for xcodetask tests.

Nothing here needs Xcode: processes, keychains and provisioning profiles are
replaced by recording fakes, and archives are plain directories.
"""

import plistlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from xcodetask.src.core.errors import ToolExecutionError
from xcodetask.src.core.inputs import TaskInputs
from xcodetask.src.core.resources import RunState


@dataclass
class Call:
    tool: str
    args: List[str]
    pipe_to: Optional[tuple] = None


class FakeRunner:
    """Records every invocation instead of spawning processes."""

    def __init__(
        self,
        version_output: Sequence[str] = ("Xcode 15.2", "Build version 15C500c"),
        fail_when: Optional[Callable[[List[str]], bool]] = None,
        on_exec: Optional[Callable[[List[str]], None]] = None,
    ):
        self.version_output = version_output
        self.fail_when = fail_when
        self.on_exec = on_exec
        self.calls: List[Call] = []

    def which(self, tool: str, required: bool = True) -> str:
        return f"/usr/bin/{tool}"

    def exec(self, tool, args, pipe_to=None, on_stdout=None) -> int:
        args = [str(a) for a in args]
        self.calls.append(Call(tool, args, pipe_to))
        if args == ["-version"] and on_stdout:
            for line in self.version_output:
                on_stdout(line)
        if self.on_exec:
            self.on_exec(args)
        if self.fail_when and self.fail_when(args):
            raise ToolExecutionError(tool, 65)
        return 0

    def builds(self) -> List[Call]:
        return [c for c in self.calls if c.args != ["-version"]]

    def archive_calls(self) -> List[Call]:
        return [c for c in self.calls if "-archivePath" in c.args and "archive" in c.args]

    def export_calls(self) -> List[Call]:
        return [c for c in self.calls if "-exportArchive" in c.args]


class FakeCertHandler:
    def __init__(self, identity: Optional[str] = "iPhone Distribution: Contoso (ABCDE12345)"):
        self.identity = identity
        self.installed: List[tuple] = []
        self.deleted: List[str] = []
        self.unlocked: List[tuple] = []
        self.fail_delete = False
        self.fail_install = False

    def install_cert_in_temporary_keychain(self, keychain, keychain_password, p12, p12_password):
        self.installed.append((keychain, keychain_password, p12, p12_password))
        if self.fail_install:
            raise ToolExecutionError("security import", 1)

    def find_signing_identity(self, keychain):
        return self.identity

    def delete_keychain(self, keychain):
        if self.fail_delete:
            raise ToolExecutionError("security delete-keychain", 50)
        self.deleted.append(str(keychain))

    def get_default_keychain_path(self):
        return "/Users/agent/Library/Keychains/login.keychain-db"

    def unlock_keychain(self, keychain, password):
        self.unlocked.append((keychain, password))


class FakeProfiles:
    def __init__(
        self,
        uuid: Optional[str] = "1f2e3d4c-0000-1111-2222-333344445555",
        profile_type: Optional[str] = "ad-hoc",
        names: Optional[Dict[str, str]] = None,
        default_name: Optional[str] = "Contoso AdHoc",
    ):
        self.uuid = uuid
        self.profile_type = profile_type
        self.names = names or {}
        self.default_name = default_name
        self.installed: List[Path] = []
        self.deleted: List[str] = []

    def install(self, prov_file):
        self.installed.append(Path(prov_file))
        return self.uuid

    def delete(self, uuid):
        self.deleted.append(uuid)

    def get_type(self, prov_file):
        return self.profile_type

    def get_name(self, prov_file):
        return self.names.get(str(prov_file), self.default_name)

    def get_uuid(self, prov_file):
        return self.uuid


def make_archive(path: Path, apps: Dict[str, Optional[str]]) -> Path:
    """Create a fake .xcarchive with one embedded profile per app.

    ``apps`` maps app folder names to bundle ids; None leaves out Info.plist.
    """
    for app_name, bundle_id in apps.items():
        app = path / "Products" / "Applications" / app_name
        app.mkdir(parents=True, exist_ok=True)
        (app / "embedded.mobileprovision").write_bytes(b"profile")
        if bundle_id:
            with open(app / "Info.plist", "wb") as f:
                plistlib.dump({"CFBundleIdentifier": bundle_id}, f)
    return path


@pytest.fixture()
def cert_handler() -> FakeCertHandler:
    return FakeCertHandler()


@pytest.fixture()
def profiles() -> FakeProfiles:
    return FakeProfiles()


@pytest.fixture()
def run_state(tmp_path: Path) -> RunState:
    return RunState(tmp_path / "state" / "state.toml")


@pytest.fixture()
def workdir(tmp_path: Path) -> Path:
    """A working directory holding an Xcode project."""
    work = tmp_path / "work"
    (work / "App.xcodeproj").mkdir(parents=True)
    return work


@pytest.fixture()
def make_inputs(workdir: Path):
    def _make(**overrides) -> TaskInputs:
        values = dict(
            cwd=workdir,
            workspace_path="App.xcodeproj",
            sdk="iphoneos",
            configuration="Release",
            scheme="App",
            actions=["build"],
            package_app=False,
        )
        values.update(overrides)
        return TaskInputs(**values)

    return _make


def archive_on_exec(apps: Dict[str, Optional[str]]):
    """Make the fake archive build produce a real .xcarchive folder."""

    def on_exec(args):
        if "archive" in args and "-archivePath" in args:
            target = Path(args[args.index("-archivePath") + 1])
            make_archive(target.with_name(target.name + ".xcarchive"), apps)

    return on_exec
