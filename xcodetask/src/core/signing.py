import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from xcodetask.logger import debug, get_console
from xcodetask.src.core.cert_handler import CertHandler
from xcodetask.src.core.inputs import SignMethod, TaskInputs
from xcodetask.src.core.resources import KeychainHandle, ProfileHandle, TemporaryResources
from xcodetask.src.ipa.provisioning_profile import ProvisioningProfiles

TEMP_KEYCHAIN_NAME = "_xcodetasktmp.keychain"


@dataclass(frozen=True)
class SigningResult:
    """Build setting overrides produced by signing resolution.

    Identity and profile overrides are only ever set when automatic signing
    is off; the development team only when it is on.
    """

    method: SignMethod = SignMethod.NONE
    keychain_path: Optional[Path] = None
    code_sign_identity: Optional[str] = None
    provisioning_profile: Optional[str] = None
    development_team: Optional[str] = None
    keychain: Optional[KeychainHandle] = None
    profile: Optional[ProfileHandle] = None

    def build_settings(self) -> List[str]:
        settings = []
        if self.keychain_path:
            settings.append(f"OTHER_CODE_SIGN_FLAGS=--keychain={self.keychain_path}")
        if self.code_sign_identity:
            settings.append(f"CODE_SIGN_IDENTITY={self.code_sign_identity}")
        if self.provisioning_profile:
            settings.append(f"PROVISIONING_PROFILE={self.provisioning_profile}")
        if self.development_team:
            settings.append(f"DEVELOPMENT_TEAM={self.development_team}")
        return settings


def _supplied_file(working_dir: Path, path: Optional[Path]) -> Optional[Path]:
    """Absolute path of an optional input file, None if unset or missing"""
    if not path or not str(path).strip():
        return None
    path = Path(path)
    if not path.is_absolute():
        path = working_dir / path
    if not path.exists():
        debug(f"Signing input {path} does not exist, skipping")
        return None
    return path.resolve()


class SigningResolver:
    def __init__(
        self,
        cert_handler: CertHandler,
        profiles: ProvisioningProfiles,
        resources: TemporaryResources,
        working_dir: Path,
    ):
        self.cert_handler = cert_handler
        self.profiles = profiles
        self.resources = resources
        self.working_dir = working_dir
        self.console = get_console()

    def resolve(self, inputs: TaskInputs) -> SigningResult:
        automatic = inputs.automatic_signing
        development_team = inputs.team_id if inputs.team_id and automatic else None

        if inputs.sign_method == SignMethod.FILE:
            result = self._resolve_files(inputs, automatic)
        elif inputs.sign_method == SignMethod.ID:
            result = self._resolve_identity(inputs, automatic)
        else:
            result = {}

        signing = SigningResult(
            method=inputs.sign_method,
            development_team=development_team,
            **result,
        )
        debug(f"Signing build settings: {signing.build_settings()}")
        return signing

    def _resolve_files(self, inputs: TaskInputs, automatic: bool) -> dict:
        result = {}

        p12 = _supplied_file(self.working_dir, inputs.p12)
        if p12:
            keychain_path = (self.working_dir / TEMP_KEYCHAIN_NAME).resolve()
            keychain_password = secrets.token_urlsafe(24)
            # Registered first so a half-finished install is still deleted
            result["keychain"] = self.resources.register(
                KeychainHandle(str(keychain_path), self.cert_handler.delete_keychain)
            )
            self.cert_handler.install_cert_in_temporary_keychain(
                keychain_path, keychain_password, p12, inputs.p12_password
            )
            result["keychain_path"] = keychain_path

            identity = self.cert_handler.find_signing_identity(keychain_path)
            if identity and not automatic:
                result["code_sign_identity"] = identity

        profile_file = _supplied_file(self.working_dir, inputs.provisioning_profile)
        if profile_file:
            uuid = self.profiles.install(profile_file)
            if uuid and not automatic:
                result["provisioning_profile"] = uuid
            if uuid and inputs.remove_profile:
                result["profile"] = self.resources.register(
                    ProfileHandle(uuid, self.profiles.delete)
                )

        return result

    def _resolve_identity(self, inputs: TaskInputs, automatic: bool) -> dict:
        if inputs.unlock_default_keychain:
            default_keychain = self.cert_handler.get_default_keychain_path()
            self.cert_handler.unlock_keychain(
                default_keychain, inputs.default_keychain_password
            )

        result = {}
        if inputs.signing_identity and not automatic:
            result["code_sign_identity"] = inputs.signing_identity
        if inputs.provisioning_profile_uuid and not automatic:
            result["provisioning_profile"] = inputs.provisioning_profile_uuid
        return result
