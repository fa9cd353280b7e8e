"""Text printed by ``repocrypt readme``."""

from typing import Any

from .attributes import rule_line
from .install import launcher_command

README_TEMPLATE = """\
# Encrypted files in this repository

Files matching `{pattern}` are encrypted with age before they are committed
and decrypted when they are checked out. The encryption is done by git
filters named `{profile}`, set up by repocrypt.

## Layout

- `{key_dir}/key.age` - the private key, protected by a passphrase
- `{key_dir}/age.recipients` - public keys files are encrypted for
- `{key_dir}/key` - the unlocked private key, local to your clone, never committed
- `{command}` - the filter program used by git
- `.gitattributes` - contains `{rule}`

## Unlocking a fresh clone

    {command} init

You will be asked for the passphrase of `{key_dir}/key.age`. Files that were
checked out before unlocking still hold ciphertext; refresh them with

    git rm --cached -r -q {pattern_dir} && git checkout HEAD -- {pattern_dir}

## Reviewing changes

`git diff` and `git log -p` show decrypted content. Files that cannot be
decrypted with your key are shown as stored.
"""


def render_readme(settings: dict[str, Any]) -> str:
    """Render usage documentation for a repository.

    Args:
        settings: Loaded config settings

    Returns:
        Markdown text
    """
    pattern = settings["pattern"]
    pattern_dir = pattern.split("*", 1)[0].rstrip("/") or "."
    return README_TEMPLATE.format(
        pattern=pattern,
        pattern_dir=pattern_dir,
        profile=settings["profile"],
        key_dir=settings["key_dir"],
        command=launcher_command(settings["key_dir"]),
        rule=rule_line(pattern, settings["profile"]),
    )
