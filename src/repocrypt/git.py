"""Git command wrapper."""

import subprocess
from pathlib import Path


class GitError(Exception):
    """Raised when git command fails."""
    pass


class NotARepositoryError(GitError):
    """Raised when the working directory is not inside a git work tree."""
    pass


def run_git(repo_dir: Path, args: list[str]) -> subprocess.CompletedProcess:
    """Run a git command in a repository, capturing text output.

    Args:
        repo_dir: Path to the repository.
        args: Git command arguments (without 'git' prefix)

    Returns:
        CompletedProcess result

    Raises:
        GitError: If git is missing or the command fails.
    """
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=repo_dir,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        raise GitError("git is not installed")

    if result.returncode != 0:
        raise GitError(result.stderr.strip() or f"Git command failed: {' '.join(args)}")
    return result


def get_toplevel(start_dir: Path | None = None) -> Path:
    """Find the root of the work tree containing start_dir.

    Args:
        start_dir: Directory to start from. Defaults to cwd.

    Returns:
        Absolute path of the work tree root.

    Raises:
        NotARepositoryError: If start_dir is not inside a work tree.
    """
    if start_dir is None:
        start_dir = Path.cwd()

    try:
        result = run_git(start_dir, ["rev-parse", "--show-toplevel"])
    except GitError:
        raise NotARepositoryError(f"Not a git repository: {start_dir}")

    return Path(result.stdout.strip())


def committed_blob(repo_dir: Path, path: str, rev: str = "HEAD") -> bytes | None:
    """Read the bytes recorded for a path at a revision.

    Args:
        repo_dir: Path to the repository.
        path: Path relative to the work tree root.
        rev: Revision to read from.

    Returns:
        Blob content, or None if the revision or path does not exist.
    """
    result = subprocess.run(
        ["git", "cat-file", "blob", f"{rev}:{path}"],
        cwd=repo_dir,
        capture_output=True,
    )
    if result.returncode != 0:
        return None
    return result.stdout


def get_config(repo_dir: Path, key: str) -> str | None:
    """Read a value from the repository's local git config.

    Args:
        repo_dir: Path to the repository.
        key: Config key, e.g. filter.repocrypt.clean

    Returns:
        The value, or None if unset.
    """
    result = subprocess.run(
        ["git", "config", "--local", "--get", key],
        cwd=repo_dir,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        return None
    return result.stdout.rstrip("\n")


def set_config(repo_dir: Path, key: str, value: str) -> None:
    """Write a value to the repository's local git config.

    Args:
        repo_dir: Path to the repository.
        key: Config key
        value: Value to set

    Raises:
        GitError: If the write fails.
    """
    run_git(repo_dir, ["config", "--local", key, value])
