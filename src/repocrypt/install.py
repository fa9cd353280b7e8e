"""In-repository copy of repocrypt.

git runs the filters through the command registered in .git/config. That
command points at a copy of this package inside the repository, so a clone
keeps working with whatever repocrypt version encrypted it.
"""

import shutil
import stat
from pathlib import Path

TOOL_DIR_NAME = "tool"
LAUNCHER_NAME = "repocrypt"

LAUNCHER_SCRIPT = '''#!/usr/bin/env python3
"""Run the repocrypt copy stored next to this file."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "tool"))

from repocrypt.cli import main

sys.exit(main())
'''


def get_package_dir() -> Path:
    """Directory of the running repocrypt package."""
    return Path(__file__).resolve().parent


def get_tool_dir(root_dir: Path, key_dir: str) -> Path:
    """Get path to the copied package."""
    return root_dir / key_dir / TOOL_DIR_NAME / "repocrypt"


def get_launcher_path(root_dir: Path, key_dir: str) -> Path:
    """Get path to the launcher script."""
    return root_dir / key_dir / LAUNCHER_NAME


def launcher_command(key_dir: str) -> str:
    """Command git should run, relative to the work tree root.

    Args:
        key_dir: Key directory relative to the work tree root

    Returns:
        Command string for git config
    """
    return f"{key_dir.strip('/')}/{LAUNCHER_NAME}"


def tool_copy_exists(root_dir: Path, key_dir: str) -> bool:
    """Check that both the launcher and the package copy are present."""
    tool_dir = get_tool_dir(root_dir, key_dir)
    return get_launcher_path(root_dir, key_dir).is_file() and (tool_dir / "cli.py").is_file()


def ensure_tool_copy(
    root_dir: Path,
    key_dir: str,
    *,
    force: bool = False,
    source_dir: Path | None = None,
) -> bool:
    """Copy the package and write the launcher unless already present.

    Args:
        root_dir: Work tree root
        key_dir: Key directory relative to root_dir
        force: Replace an existing copy
        source_dir: Package directory to copy (defaults to the running one)

    Returns:
        True if anything was written
    """
    if tool_copy_exists(root_dir, key_dir) and not force:
        return False

    if source_dir is None:
        source_dir = get_package_dir()

    tool_dir = get_tool_dir(root_dir, key_dir)
    # when running from the copy itself there is nothing newer to install
    if not (tool_dir.exists() and tool_dir.resolve() == source_dir.resolve()):
        if tool_dir.exists():
            shutil.rmtree(tool_dir)

        tool_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(
            source_dir,
            tool_dir,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
        )

    launcher = get_launcher_path(root_dir, key_dir)
    launcher.write_text(LAUNCHER_SCRIPT)
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return True
