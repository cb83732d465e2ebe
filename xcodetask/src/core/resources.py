"""Temporary signing resources and their guaranteed release.

A run may create a temporary keychain and install a provisioning profile.
Both are registered with ``TemporaryResources`` as soon as they exist; the
scope deletes them when it exits, whether the run succeeded or not. Each
registration is also written to a small TOML state file so the ``cleanup``
command can remove leftovers of a run that died before its scope exited.
"""

import os
from pathlib import Path
from typing import Callable, ClassVar, Dict, List, Optional

import toml

from xcodetask.logger import debug, get_console, warning

KEYCHAIN_TO_DELETE = "KEYCHAIN_TO_DELETE"
PROFILE_TO_DELETE = "PROFILE_TO_DELETE"
STATE_FILE_NAME = ".xcodetask-state.toml"


def get_state_path(working_dir: Optional[Path] = None) -> Path:
    """State file of the run in ``working_dir`` (default: current directory)"""
    env_state_file = os.environ.get("XCODETASK_STATE_FILE")
    if env_state_file:
        return Path(env_state_file)
    return Path(working_dir or Path.cwd()) / STATE_FILE_NAME


class RunState:
    """Named slots persisted between the task and its post-job cleanup"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_state_path()

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        return dict(toml.load(self.path))

    def get(self, key: str) -> Optional[str]:
        return self.load().get(key) or None

    def set(self, key: str, value: str) -> None:
        state = self.load()
        state[key] = value
        self._write(state)

    def clear(self, key: str) -> None:
        state = self.load()
        if key in state:
            del state[key]
            self._write(state)

    def _write(self, state: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            toml.dump(state, f)


class ResourceHandle:
    """A resource owned by this run, deleted by ``release``"""

    state_key: ClassVar[str]
    label: ClassVar[str]

    def __init__(self, value: str, deleter: Callable[[str], None]):
        self.value = value
        self._deleter = deleter
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self._deleter(self.value)
        self.released = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r}, released={self.released})"


class KeychainHandle(ResourceHandle):
    state_key = KEYCHAIN_TO_DELETE
    label = "temporary keychain"


class ProfileHandle(ResourceHandle):
    state_key = PROFILE_TO_DELETE
    label = "provisioning profile"


class TemporaryResources:
    """Scope that releases every registered handle on exit"""

    def __init__(self, state: RunState):
        self.state = state
        self.handles: List[ResourceHandle] = []
        self.warnings: List[str] = []

    def __enter__(self) -> "TemporaryResources":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release_all()
        return False

    def register(self, handle: ResourceHandle) -> ResourceHandle:
        self.handles.append(handle)
        self.state.set(handle.state_key, handle.value)
        debug(f"Registered {handle.label} for deletion: {handle.value}")
        return handle

    def release_all(self) -> None:
        for handle in self.handles:
            if handle.released:
                continue
            try:
                handle.release()
                self.state.clear(handle.state_key)
                get_console().log(f"[green]Deleted {handle.label}:[/] {handle.value}")
            except Exception as e:
                debug(f"Failed to delete {handle.label}. Error = {e}")
                message = f"Failed to delete {handle.label}: {handle.value}"
                warning(message)
                self.warnings.append(message)
