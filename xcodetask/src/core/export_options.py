import plistlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from xcodetask.logger import debug, get_console, warning
from xcodetask.src.core.errors import (
    ExportMethodRequiredError,
    ExportOptionsGenerationError,
    ExportOptionsPlistInvalidFilePathError,
)
from xcodetask.src.core.inputs import ExportOptionsMode, TaskInputs
from xcodetask.src.core.version_probe import XcodeVersion
from xcodetask.src.ipa.provisioning_profile import ProvisioningProfiles, get_bundle_id
from xcodetask.src.utils.find_match import find_match

EXPORT_OPTIONS_PLIST = "_XcodeTaskExportOptions.plist"
EMBEDDED_PROFILE_PATTERN = "**/embedded.mobileprovision"


@dataclass
class ExportOptions:
    """Options for ``xcodebuild -exportArchive``"""

    method: Optional[str] = None
    team_id: Optional[str] = None
    plist_path: Optional[Path] = None
    signing_style: Optional[str] = None
    # bundle identifier -> provisioning profile name
    provisioning_profiles: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_plist(self) -> dict:
        data = {"method": self.method}
        if self.team_id:
            data["teamID"] = self.team_id
        if self.signing_style:
            data["signingStyle"] = self.signing_style
            data["provisioningProfiles"] = dict(self.provisioning_profiles)
        return data


def write_export_options(options: ExportOptions, path: Path) -> Path:
    """Write a fresh export options plist, replacing any previous one"""
    if path.exists():
        path.unlink()
    with open(path, "wb") as f:
        plistlib.dump(options.to_plist(), f, sort_keys=False)
    get_console().log(f"[green]Generated export options:[/] {path}")
    return path


def map_embedded_profiles(
    embedded_profiles: List[Path], profiles: ProvisioningProfiles
) -> Dict[str, str]:
    """Map the bundle id of each signed bundle to its embedded profile name"""
    mapping = {}
    for embedded in embedded_profiles:
        profile_name = profiles.get_name(embedded)
        info_plist = embedded.parent / "Info.plist"
        bundle_id = get_bundle_id(info_plist)
        debug(
            f"embedded provisioning profile = {embedded}, profile name = {profile_name}, "
            f"bundle identifier = {bundle_id}"
        )
        if not profile_name or not bundle_id:
            raise ExportOptionsGenerationError(
                f"missing bundle identifier or profile name for {embedded}"
            )
        mapping[bundle_id] = profile_name
    return mapping


def resolve_export_options(
    inputs: TaskInputs,
    archive_to_check: Path,
    xcode_version: XcodeVersion,
    profiles: ProvisioningProfiles,
    working_dir: Path,
) -> ExportOptions:
    """Work out how the archives get exported, generating a plist if needed"""
    options = ExportOptions()
    embedded_profiles = find_match(archive_to_check, EMBEDDED_PROFILE_PATTERN)
    mode = inputs.export_options

    if mode == ExportOptionsMode.AUTO:
        # Detect the export method from the profile embedded in the archive
        if embedded_profiles:
            debug(f"embedded prov profile = {embedded_profiles[0]}")
            options.method = profiles.get_type(embedded_profiles[0])
            debug(f"Using export method = {options.method}")
        if not options.method:
            message = (
                "Unable to determine the export method from the archive, "
                "exporting with xcodebuild defaults"
            )
            warning(message)
            options.warnings.append(message)
    elif mode == ExportOptionsMode.SPECIFY:
        if not inputs.export_method:
            raise ExportMethodRequiredError()
        options.method = inputs.export_method
        options.team_id = inputs.export_team_id or None
    elif mode == ExportOptionsMode.PLIST:
        plist = inputs.export_options_plist
        if plist and not Path(plist).is_absolute():
            plist = working_dir / plist
        if not plist or not Path(plist).is_file():
            raise ExportOptionsPlistInvalidFilePathError(inputs.export_options_plist)
        options.plist_path = Path(plist)
        return options

    if not options.method:
        return options

    if mode == ExportOptionsMode.AUTO and not inputs.automatic_signing:
        if xcode_version.at_least(9):
            # Xcode 9 exports need the profile of every bundle for manual signing
            options.signing_style = "manual"
            options.provisioning_profiles = map_embedded_profiles(
                embedded_profiles, profiles
            )
        elif not xcode_version.is_known:
            message = (
                "Xcode version is unknown, provisioning profiles are not "
                "added to the export options"
            )
            warning(message)
            options.warnings.append(message)

    options.plist_path = write_export_options(
        options, working_dir / EXPORT_OPTIONS_PLIST
    )
    return options
