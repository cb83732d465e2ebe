from pathlib import Path
from typing import List, Optional
import subprocess
import re

from xcodetask.logger import debug, get_console
from xcodetask.src.core.errors import ToolExecutionError

# 1) 0123456789ABCDEF0123456789ABCDEF01234567 "iPhone Distribution: Contoso (ABCDE12345)"
_IDENTITY_LINE = re.compile(r'^\s*\d+\)\s+([A-F0-9]{40})\s+"(.+)"\s*$')


class CertHandler:
    """Keychain operations through the macOS ``security`` tool"""

    def __init__(self, security: str = "security"):
        self.security = security
        self.console = get_console()

    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        result = subprocess.run(
            [self.security, *args],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            # Only the subcommand is logged, arguments may hold passwords
            self.console.log(
                f"[red]security {args[0]} failed:[/]\nstdout: {result.stdout}\nstderr: {result.stderr}"
            )
            if check:
                raise ToolExecutionError(f"security {args[0]}", result.returncode)
        return result

    def install_cert_in_temporary_keychain(
        self,
        keychain: Path,
        keychain_password: str,
        p12: Path,
        p12_password: Optional[str],
    ) -> None:
        """Create a keychain at ``keychain`` and import the p12 certificate into it"""
        self.console.log(f"[yellow]Creating temporary keychain:[/] {keychain}")
        if keychain.exists():
            self.delete_keychain(keychain)

        self._run(["create-keychain", "-p", keychain_password, str(keychain)])

        # lock on sleep and after a 6 hour timeout
        self._run(["set-keychain-settings", "-lut", "21600", str(keychain)])
        self._run(["unlock-keychain", "-p", keychain_password, str(keychain)])

        self.console.log(f"[yellow]Importing certificate:[/] {p12}")
        self._run(
            [
                "import",
                str(p12),
                "-P",
                p12_password or "",
                "-A",
                "-t",
                "cert",
                "-f",
                "pkcs12",
                "-k",
                str(keychain),
            ]
        )

        # Allow codesign to access the key without prompting
        self._run(
            [
                "set-key-partition-list",
                "-S",
                "apple-tool:,apple:",
                "-k",
                keychain_password,
                str(keychain),
            ],
            check=False,
        )

        keychains = self._get_keychain_list()
        if str(keychain) not in keychains:
            keychains.append(str(keychain))
        self._run(["list-keychains", "-d", "user", "-s", *keychains])
        self.console.log("[green]Certificate installed in temporary keychain[/]")

    def find_signing_identity(self, keychain: Path) -> Optional[str]:
        """Return the name of the first valid codesigning identity in ``keychain``"""
        result = self._run(
            ["find-identity", "-v", "-p", "codesigning", str(keychain)]
        )
        for line in result.stdout.splitlines():
            match = _IDENTITY_LINE.match(line)
            if match:
                identity = match.group(2)
                self.console.log(f"[green]Got signing identity:[/] {identity}")
                return identity

        self.console.log("[yellow]No valid codesigning identity found in keychain")
        return None

    def delete_keychain(self, keychain) -> None:
        keychain = Path(keychain)
        if not keychain.exists():
            debug(f"Keychain {keychain} is already gone")
            return

        keychains = [k for k in self._get_keychain_list() if k != str(keychain)]
        self._run(["list-keychains", "-d", "user", "-s", *keychains], check=False)
        self._run(["delete-keychain", str(keychain)])

    def get_default_keychain_path(self) -> str:
        result = self._run(["default-keychain"])
        return result.stdout.strip().strip('"')

    def unlock_keychain(self, keychain: str, password: Optional[str]) -> None:
        self.console.log(f"[yellow]Unlocking keychain:[/] {keychain}")
        self._run(["unlock-keychain", "-p", password or "", keychain])

    def _get_keychain_list(self) -> List[str]:
        """Get list of current keychains"""
        result = self._run(["list-keychains", "-d", "user"])
        return [k.strip().strip('"') for k in result.stdout.splitlines() if k.strip()]
