"""Repository setup.

Setup walks a repository through these states:

    UNINITIALIZED  no key.age
    LOCKED         key.age present, no local key cache
    UNLOCKED       key cache present
    READY          tool copy and git filter registration in place

The .gitattributes rule belongs to the operator once the file exists, so a
missing rule is warned about but does not hold a repository back from READY.

Every step checks before it acts, so running setup again on a ready
repository changes nothing.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Callable

from . import git
from .attributes import RuleStatus, ensure_path_rule
from .crypto import EncryptionGateway
from .exclude import local_only_entries, update_exclude_file
from .install import ensure_tool_copy, launcher_command, tool_copy_exists
from .keys import CACHE_NAME, PROTECTED_KEY_NAME, KeyStore
from .output import Output, get_output

GetConfig = Callable[[Path, str], str | None]
SetConfig = Callable[[Path, str, str], None]


class SetupState(Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    READY = "ready"


def registration_entries(profile: str, command: str) -> dict[str, str]:
    """Git config entries that wire the filters into a repository.

    Args:
        profile: Filter and diff driver name
        command: Command that runs repocrypt

    Returns:
        Mapping of config key to value
    """
    return {
        f"filter.{profile}.clean": f"{command} clean %f",
        f"filter.{profile}.smudge": f"{command} smudge %f",
        f"filter.{profile}.required": "true",
        f"diff.{profile}.textconv": f"{command} textconv",
    }


def is_registered(root_dir: Path, settings: dict[str, Any], get_config: GetConfig = git.get_config) -> bool:
    """Check that every registration entry is set to its expected value."""
    entries = registration_entries(settings["profile"], launcher_command(settings["key_dir"]))
    return all(get_config(root_dir, key) == value for key, value in entries.items())


def detect_state(
    root_dir: Path,
    settings: dict[str, Any],
    get_config: GetConfig = git.get_config,
) -> SetupState:
    """Work out where a repository is in the setup sequence.

    Args:
        root_dir: Work tree root
        settings: Loaded config settings
        get_config: Git config reader

    Returns:
        Current SetupState
    """
    key_dir = root_dir / settings["key_dir"]
    if not (key_dir / PROTECTED_KEY_NAME).exists():
        return SetupState.UNINITIALIZED
    if not (key_dir / CACHE_NAME).exists():
        return SetupState.LOCKED

    ready = (
        tool_copy_exists(root_dir, settings["key_dir"])
        and is_registered(root_dir, settings, get_config)
    )
    return SetupState.READY if ready else SetupState.UNLOCKED


class RepositorySetup:
    """Bring a repository to the READY state."""

    def __init__(
        self,
        root_dir: Path,
        settings: dict[str, Any],
        gateway: EncryptionGateway,
        *,
        get_config: GetConfig = git.get_config,
        set_config: SetConfig = git.set_config,
        output: Output | None = None,
        source_dir: Path | None = None,
    ):
        self.root_dir = root_dir
        self.settings = settings
        self.gateway = gateway
        self.get_config = get_config
        self.set_config = set_config
        self.output = output or get_output()
        self.source_dir = source_dir
        self.keystore = KeyStore(
            root_dir,
            gateway,
            key_dir=settings["key_dir"],
            output=self.output,
        )

    def run(self, *, update: bool = False) -> SetupState:
        """Run every setup step.

        Args:
            update: Replace the in-repository tool copy with the running one

        Returns:
            SetupState.READY

        Raises:
            KeyStoreError: If key material cannot be created or unlocked
            CryptoError: If the encryption capability fails
            GitError: If git config cannot be written
        """
        key_dir = self.settings["key_dir"]

        self.output.header("Key material")
        # exclude the cache before it can exist
        update_exclude_file(self.root_dir, local_only_entries(key_dir))

        generated = self.keystore.ensure_key_pair()
        if not generated:
            self.output.unchanged(f"{key_dir}/key.age")
        if not self.keystore.ensure_unprotected_cache():
            self.output.unchanged(f"{key_dir}/key")

        self.output.header("Filter program")
        if ensure_tool_copy(self.root_dir, key_dir, force=update, source_dir=self.source_dir):
            self.output.created(launcher_command(key_dir))
        else:
            self.output.unchanged(launcher_command(key_dir))

        self.output.header("Git configuration")
        self.register()

        self.output.header("Path rules")
        status = ensure_path_rule(
            self.root_dir,
            self.settings["pattern"],
            self.settings["profile"],
            output=self.output,
        )

        if status is RuleStatus.MISSING:
            self.output.success("Repository ready. Files are encrypted once the .gitattributes rule is added.")
        else:
            self.output.success("Repository ready for encrypted files.")
        return SetupState.READY

    def register(self) -> list[str]:
        """Write the filter registration into the local git config.

        Returns:
            Keys that were written
        """
        entries = registration_entries(
            self.settings["profile"],
            launcher_command(self.settings["key_dir"]),
        )
        written = []
        for key, value in entries.items():
            if self.get_config(self.root_dir, key) == value:
                self.output.unchanged(key)
                continue
            self.set_config(self.root_dir, key, value)
            self.output.created(key)
            written.append(key)
        return written
