import sys
from typing import List, Optional

from xcodetask.logger import get_console
from xcodetask.src.core.cert_handler import CertHandler
from xcodetask.src.core.resources import (
    KEYCHAIN_TO_DELETE,
    PROFILE_TO_DELETE,
    KeychainHandle,
    ProfileHandle,
    RunState,
    TemporaryResources,
    get_state_path,
)
from xcodetask.src.ipa.provisioning_profile import ProvisioningProfiles


def release_pending(
    state: RunState,
    cert_handler: Optional[CertHandler] = None,
    profiles: Optional[ProvisioningProfiles] = None,
) -> List[str]:
    """Delete whatever a previous run left in the state file.

    Returns the warnings raised for resources that could not be deleted.
    """
    cert_handler = cert_handler or CertHandler()
    profiles = profiles or ProvisioningProfiles()
    console = get_console()

    resources = TemporaryResources(state)
    keychain = state.get(KEYCHAIN_TO_DELETE)
    if keychain:
        resources.handles.append(KeychainHandle(keychain, cert_handler.delete_keychain))
    profile = state.get(PROFILE_TO_DELETE)
    if profile:
        resources.handles.append(ProfileHandle(profile, profiles.delete))

    if not resources.handles:
        console.print("[green]Nothing to clean up[/]")
        return []

    resources.release_all()
    return resources.warnings


def main(parsed_args=None) -> int:
    working_dir = getattr(parsed_args, "cwd", None)
    release_pending(RunState(get_state_path(working_dir)))
    # Leftover deletion failures are warnings, the job itself already finished
    return 0


def run_cleanup_command(args):
    """Entry point for the cleanup command from CLI"""
    return main(parsed_args=args)


if __name__ == "__main__":
    from xcodetask.cli import main as cli_main

    sys.exit(cli_main())
