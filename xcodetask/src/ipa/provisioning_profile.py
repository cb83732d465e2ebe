import plistlib
import shutil
from pathlib import Path
from typing import Optional

from asn1crypto.cms import ContentInfo

from xcodetask.logger import debug, get_console


def get_profiles_dir() -> Path:
    """Directory Xcode searches for installed provisioning profiles"""
    return Path.home() / "Library" / "MobileDevice" / "Provisioning Profiles"


def dump_prov(prov_file: Path) -> dict:
    """Read a provisioning profile without using macOS security command"""
    with open(prov_file, "rb") as f:
        content_info = ContentInfo.load(f.read())
    signed_data = content_info["content"]
    # The plist is the encapsulated content of the CMS envelope
    plist_data = signed_data["encap_content_info"]["content"].native
    return plistlib.loads(plist_data)


def detect_profile_type(profile: dict) -> Optional[str]:
    """Map profile contents to an export method.

    Enterprise profiles provision all devices, development profiles allow
    debugging, and of the rest only ad-hoc profiles list devices.
    """
    if profile.get("ProvisionsAllDevices") is True:
        return "enterprise"
    entitlements = profile.get("Entitlements") or {}
    if entitlements.get("get-task-allow") is True:
        return "development"
    if not profile.get("ProvisionedDevices"):
        return "app-store"
    return "ad-hoc"


class ProvisioningProfiles:
    """Reads, installs and removes provisioning profiles"""

    def __init__(self, profiles_dir: Optional[Path] = None):
        self.profiles_dir = Path(profiles_dir) if profiles_dir else get_profiles_dir()
        self.console = get_console()

    def get_uuid(self, prov_file: Path) -> Optional[str]:
        return dump_prov(prov_file).get("UUID")

    def get_name(self, prov_file: Path) -> Optional[str]:
        return dump_prov(prov_file).get("Name")

    def get_type(self, prov_file: Path) -> Optional[str]:
        profile_type = detect_profile_type(dump_prov(prov_file))
        debug(f"Provisioning profile {prov_file} is of type {profile_type}")
        return profile_type

    def install(self, prov_file: Path) -> Optional[str]:
        """Copy the profile where Xcode finds it, return its UUID"""
        uuid = self.get_uuid(prov_file)
        if not uuid:
            self.console.log(f"[yellow]No UUID found in provisioning profile:[/] {prov_file}")
            return None

        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        target = self.profiles_dir / f"{uuid}.mobileprovision"
        shutil.copyfile(prov_file, target)
        self.console.log(f"[green]Installed provisioning profile {uuid}[/]")
        return uuid

    def delete(self, uuid: str) -> None:
        """Remove an installed profile by UUID"""
        target = self.profiles_dir / f"{uuid}.mobileprovision"
        if target.exists():
            target.unlink()
        else:
            debug(f"Provisioning profile {target} is already gone")


def get_bundle_id(info_plist: Path) -> Optional[str]:
    """CFBundleIdentifier from an app's Info.plist, None if unreadable"""
    try:
        with open(info_plist, "rb") as f:
            return plistlib.load(f).get("CFBundleIdentifier")
    except (OSError, plistlib.InvalidFileException) as e:
        debug(f"Could not read {info_plist}: {e}")
        return None
