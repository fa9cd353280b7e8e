"""Command-line interface."""

import argparse
import sys
from pathlib import Path
from typing import Any

from . import __version__, git
from .age import INSTALL_HINT, AgeGateway, is_age_available
from .attributes import check_path_rule
from .config import ConfigError, load_config
from .crypto import CryptoError
from .exclude import is_excluded, local_only_entries
from .filters import FilterPipeline
from .install import launcher_command, tool_copy_exists
from .keys import KeyStore, KeyStoreError
from .output import Output, set_output
from .readme import render_readme
from .repository import RepositorySetup, SetupState, detect_state, is_registered

FILTER_COMMANDS = ("clean", "smudge", "textconv")


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error, 2 for usage error).
    """
    parser = argparse.ArgumentParser(
        prog="repocrypt",
        description="Keep selected files age-encrypted in git history",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Global flags
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress informational output",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create or unlock the key and install the git filters")
    subparsers.add_parser("update", help="Like init, but refresh the in-repository filter program")
    subparsers.add_parser("status", help="Show setup state of this repository")
    subparsers.add_parser("readme", help="Print documentation for this repository")

    clean_parser = subparsers.add_parser("clean", help="Encrypt stdin to stdout (git clean filter)")
    clean_parser.add_argument("path", help="Path of the file in the repository")

    smudge_parser = subparsers.add_parser("smudge", help="Decrypt stdin to stdout (git smudge filter)")
    smudge_parser.add_argument("path", help="Path of the file in the repository")

    textconv_parser = subparsers.add_parser("textconv", help="Decrypt a file to stdout (git diff textconv)")
    textconv_parser.add_argument("path", help="File to decrypt")

    args = parser.parse_args(argv)

    if args.command in FILTER_COMMANDS:
        # stdout carries file content for git
        output = Output.for_filter(no_color=args.no_color, quiet=args.quiet)
    else:
        output = Output(no_color=args.no_color, quiet=args.quiet)
    set_output(output)

    if args.command is None:
        parser.print_help()
        return 0

    handlers = {
        "init": lambda: cmd_init(output, update=False),
        "update": lambda: cmd_init(output, update=True),
        "status": lambda: cmd_status(output),
        "readme": lambda: cmd_readme(output),
        "clean": lambda: cmd_clean(args, output),
        "smudge": lambda: cmd_smudge(args, output),
        "textconv": lambda: cmd_textconv(args, output),
    }

    handler = handlers.get(args.command)
    if handler:
        return handler()

    return 0


def _get_root_and_settings(output: Output) -> tuple[Path, dict[str, Any]] | None:
    """Find the work tree root and load its settings.

    Args:
        output: Output handler

    Returns:
        Tuple of (root_dir, settings) or None on error
    """
    try:
        root_dir = git.get_toplevel()
    except git.GitError as e:
        output.error(str(e))
        return None

    try:
        settings = load_config(root_dir)
    except ConfigError as e:
        output.error(str(e))
        return None

    return root_dir, settings


def _get_pipeline(output: Output) -> tuple[Path, FilterPipeline] | None:
    """Build the filter pipeline for the current repository."""
    result = _get_root_and_settings(output)
    if result is None:
        return None
    root_dir, settings = result

    gateway = AgeGateway(armor=settings["armor"])
    keystore = KeyStore(root_dir, gateway, key_dir=settings["key_dir"], output=output)
    return root_dir, FilterPipeline(gateway, keystore, output=output)


def _write_stdout(data: bytes) -> None:
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


def cmd_init(output: Output, *, update: bool) -> int:
    """Run repository setup."""
    result = _get_root_and_settings(output)
    if result is None:
        return 1
    root_dir, settings = result

    if not is_age_available():
        output.error(INSTALL_HINT)
        return 1

    setup = RepositorySetup(
        root_dir,
        settings,
        AgeGateway(armor=settings["armor"]),
        output=output,
    )

    try:
        state = setup.run(update=update)
    except (KeyStoreError, CryptoError, git.GitError, OSError) as e:
        output.error(str(e))
        return 1

    return 0 if state is SetupState.READY else 1


def cmd_status(output: Output) -> int:
    """Show where the repository is in the setup sequence."""
    result = _get_root_and_settings(output)
    if result is None:
        return 1
    root_dir, settings = result

    key_dir = settings["key_dir"]
    keystore = KeyStore(root_dir, AgeGateway(), key_dir=key_dir, output=output)
    state = detect_state(root_dir, settings)

    output.header(f"State: {state.value}")
    output.check(f"{key_dir}/key.age", keystore.protected_key_path.exists())
    output.check(f"{key_dir}/age.recipients", keystore.recipients_path.exists())
    output.check(f"{key_dir}/key (unlocked key)", keystore.identity_or_none() is not None)
    output.check("unlocked key excluded from commits", is_excluded(root_dir, local_only_entries(key_dir)))
    output.check(launcher_command(key_dir), tool_copy_exists(root_dir, key_dir))
    output.check(f"git config filter.{settings['profile']} / diff.{settings['profile']}", is_registered(root_dir, settings))
    output.check(".gitattributes rule", check_path_rule(root_dir, settings["pattern"], settings["profile"]))
    return 0


def cmd_readme(output: Output) -> int:
    """Print repository documentation."""
    result = _get_root_and_settings(output)
    if result is None:
        return 1
    _, settings = result

    sys.stdout.write(render_readme(settings))
    return 0


def cmd_clean(args, output: Output) -> int:
    """git clean filter: plaintext on stdin, ciphertext on stdout."""
    result = _get_pipeline(output)
    if result is None:
        return 1
    root_dir, pipeline = result

    data = sys.stdin.buffer.read()
    committed = git.committed_blob(root_dir, args.path)

    try:
        encrypted = pipeline.outbound(data, committed)
    except (KeyStoreError, CryptoError) as e:
        output.error(f"Cannot encrypt {args.path}: {e}")
        return 1

    _write_stdout(encrypted)
    return 0


def cmd_smudge(args, output: Output) -> int:
    """git smudge filter: ciphertext on stdin, plaintext on stdout."""
    result = _get_pipeline(output)
    if result is None:
        return 1
    _, pipeline = result

    data = sys.stdin.buffer.read()

    try:
        decrypted = pipeline.inbound(data, args.path)
    except CryptoError as e:
        output.error(str(e))
        return 1

    _write_stdout(decrypted)
    return 0


def cmd_textconv(args, output: Output) -> int:
    """git textconv: decrypt a named file to stdout."""
    result = _get_pipeline(output)
    if result is None:
        return 1
    _, pipeline = result

    try:
        rendered = pipeline.diff_transform(Path(args.path))
    except OSError as e:
        output.error(f"Cannot read {args.path}: {e}")
        return 1
    except CryptoError as e:
        output.error(str(e))
        return 1

    _write_stdout(rendered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
