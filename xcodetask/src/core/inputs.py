from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class SignMethod(Enum):
    NONE = "none"
    FILE = "file"  # p12 certificate and provisioning profile files
    ID = "id"  # identity already installed on the agent


class ExportOptionsMode(Enum):
    AUTO = "auto"
    SPECIFY = "specify"
    PLIST = "plist"


SIMULATOR_SDK = "iphonesimulator"


@dataclass
class TaskInputs:
    """Declarative inputs of one task run"""

    # Tooling and paths
    developer_dir: Optional[str] = None
    cwd: Path = field(default_factory=Path.cwd)
    output_pattern: str = "output"
    workspace_path: Optional[str] = None  # glob pattern, relative to cwd

    # Build
    sdk: Optional[str] = None
    configuration: Optional[str] = None
    scheme: Optional[str] = None
    use_xcpretty: bool = False
    actions: List[str] = field(default_factory=lambda: ["build"])
    package_app: bool = True
    args: Optional[str] = None

    # Signing
    sign_method: SignMethod = SignMethod.NONE
    p12: Optional[Path] = None
    p12_password: Optional[str] = None
    provisioning_profile: Optional[Path] = None
    remove_profile: bool = False
    unlock_default_keychain: bool = False
    default_keychain_password: Optional[str] = None
    signing_identity: Optional[str] = None
    provisioning_profile_uuid: Optional[str] = None
    automatic_signing: bool = False
    team_id: Optional[str] = None

    # Archive and export
    archive_path: str = "output"
    export_options: ExportOptionsMode = ExportOptionsMode.AUTO
    export_method: Optional[str] = None
    export_team_id: Optional[str] = None
    export_options_plist: Optional[Path] = None
    export_path: str = "output"

    publish_junit_results: bool = False

    @property
    def should_package(self) -> bool:
        return self.package_app and self.sdk != SIMULATOR_SDK
