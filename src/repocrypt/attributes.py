"""Path rules in .gitattributes.

An existing .gitattributes is operator-authored. It is read, never
rewritten: if the repocrypt rule is missing the operator is told which line
to add.
"""

from enum import Enum
from pathlib import Path

from .output import Output, get_output

ATTRIBUTES_NAME = ".gitattributes"


class RuleStatus(Enum):
    CREATED = "created"
    PRESENT = "present"
    MISSING = "missing"


def get_attributes_path(root_dir: Path) -> Path:
    """Get path to the top-level .gitattributes."""
    return root_dir / ATTRIBUTES_NAME


def rule_line(pattern: str, profile: str) -> str:
    """Build the attribute line routing a glob through the filter and diff driver.

    Args:
        pattern: Path glob, relative to the work tree root
        profile: Filter and diff driver name

    Returns:
        Line without trailing newline
    """
    return f"{pattern} filter={profile} diff={profile}"


def has_rule(content: str, pattern: str, profile: str) -> bool:
    """Check for the exact rule, ignoring surrounding whitespace and spacing.

    Args:
        content: .gitattributes content
        pattern: Path glob
        profile: Filter and diff driver name

    Returns:
        True if some line is exactly the rule
    """
    expected = rule_line(pattern, profile).split()
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.split() == expected:
            return True
    return False


def check_path_rule(root_dir: Path, pattern: str, profile: str) -> bool:
    """Check whether .gitattributes carries the rule."""
    attributes_path = get_attributes_path(root_dir)
    if not attributes_path.exists():
        return False
    return has_rule(attributes_path.read_text(), pattern, profile)


def ensure_path_rule(
    root_dir: Path,
    pattern: str,
    profile: str,
    output: Output | None = None,
) -> RuleStatus:
    """Make sure files matching pattern go through the filter.

    Args:
        root_dir: Work tree root
        pattern: Path glob
        profile: Filter and diff driver name
        output: Output handler

    Returns:
        CREATED if the file was written, PRESENT if the rule was already
        there, MISSING if the file exists without the rule (left untouched).
    """
    if output is None:
        output = get_output()

    attributes_path = get_attributes_path(root_dir)
    line = rule_line(pattern, profile)

    if not attributes_path.exists():
        attributes_path.write_text(line + "\n")
        output.created(ATTRIBUTES_NAME)
        return RuleStatus.CREATED

    if has_rule(attributes_path.read_text(), pattern, profile):
        output.unchanged(ATTRIBUTES_NAME)
        return RuleStatus.PRESENT

    output.warning(
        f"{ATTRIBUTES_NAME} exists but has no repocrypt rule. Add this line yourself:\n"
        f"    {line}"
    )
    return RuleStatus.MISSING
