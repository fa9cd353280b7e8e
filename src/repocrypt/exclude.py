"""Git exclude file management for repocrypt."""

from pathlib import Path

from . import git

BEGIN_MARKER = "# BEGIN repocrypt managed - do not edit"
END_MARKER = "# END repocrypt managed"


def get_exclude_path(root_dir: Path) -> Path:
    """Get path to the info/exclude file git reads for this work tree.

    Linked worktrees and submodules have a .git file instead of a
    directory, so the location is asked from git.

    Args:
        root_dir: Root directory of the work tree

    Returns:
        Path to exclude file

    Raises:
        GitError: If root_dir is not inside a git work tree
    """
    result = git.run_git(root_dir, ["rev-parse", "--git-path", "info/exclude"])
    return root_dir / result.stdout.strip()


def local_only_entries(key_dir: str) -> list[str]:
    """Paths under the key directory that must never be committed.

    Args:
        key_dir: Key directory relative to the work tree root

    Returns:
        Exclude patterns anchored at the work tree root
    """
    key_dir = key_dir.strip("/")
    return [
        f"/{key_dir}/key",
        f"/{key_dir}/.*.tmp",
        f"/{key_dir}/**/__pycache__/",
    ]


def update_exclude_file(root_dir: Path, entries: list[str]) -> bool:
    """Update .git/info/exclude with managed section.

    Args:
        root_dir: Root directory of the repository
        entries: Patterns to exclude

    Returns:
        True if the file changed
    """
    exclude_path = get_exclude_path(root_dir)

    exclude_path.parent.mkdir(parents=True, exist_ok=True)

    existing_content = ""
    if exclude_path.exists():
        existing_content = exclude_path.read_text()

    content_without_managed = _remove_managed_section(existing_content)
    managed_section = _build_managed_section(entries)

    new_content = content_without_managed.rstrip()
    if new_content:
        new_content += "\n\n"
    new_content += managed_section

    if new_content == existing_content:
        return False

    exclude_path.write_text(new_content)
    return True


def is_excluded(root_dir: Path, entries: list[str]) -> bool:
    """Check whether every entry is in the managed section."""
    exclude_path = get_exclude_path(root_dir)
    if not exclude_path.exists():
        return False
    managed = _managed_lines(exclude_path.read_text())
    return all(entry in managed for entry in entries)


def _managed_lines(content: str) -> list[str]:
    lines = []
    in_managed = False
    for line in content.split("\n"):
        if line.strip() == BEGIN_MARKER:
            in_managed = True
            continue
        if line.strip() == END_MARKER:
            in_managed = False
            continue
        if in_managed:
            lines.append(line.strip())
    return lines


def _remove_managed_section(content: str) -> str:
    """Remove the managed section from content.

    Args:
        content: File content

    Returns:
        Content with managed section removed
    """
    lines = content.split("\n")
    result = []
    in_managed = False

    for line in lines:
        if line.strip() == BEGIN_MARKER:
            in_managed = True
            continue
        if line.strip() == END_MARKER:
            in_managed = False
            continue
        if not in_managed:
            result.append(line)

    return "\n".join(result)


def _build_managed_section(entries: list[str]) -> str:
    """Build the managed section content."""
    lines = [BEGIN_MARKER]
    lines.extend(sorted(set(entries)))
    lines.append(END_MARKER)

    return "\n".join(lines) + "\n"
