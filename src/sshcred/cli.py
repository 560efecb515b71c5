"""CLI for inspecting sshcred credentials.

This module provides command-line interface for:
- Listing stored credential definitions
- Resolving a credential and describing its keys
- Converting PuTTY keys to OpenSSH format
"""

import argparse
import logging
import os
import stat
import sys
from pathlib import Path

from sshcred.core.config import Config
from sshcred.core.paths import get_default_config_path
from sshcred.ssh.keys import (
    KeyConversionError,
    describe_private_key,
    normalize_private_key,
)
from sshcred.ssh.putty import is_putty_key


def load_config(args: argparse.Namespace) -> Config | None:
    """Load the configuration named on the command line, or the default one.

    Returns:
        The configuration, or None if the file could not be read or parsed.
        The error is reported on stderr.
    """
    config_path = Path(args.config) if args.config else get_default_config_path()
    try:
        return Config.from_file(config_path)
    except (OSError, ValueError) as e:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors
        print(f"Could not load {config_path}: {e}", file=sys.stderr)
        return None


def cmd_list(args: argparse.Namespace) -> int:
    """List command handler.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    config = load_config(args)
    if config is None:
        return 1

    configs = config.credential_configs()
    if not configs:
        print("No credentials defined.")
        return 0

    for config in configs:
        line = f"{config.id}\t{config.username}\t{config.private_key_source.kind}"
        if config.description:
            line += f"\t{config.description}"
        print(line)
    return 0


def cmd_keys(args: argparse.Namespace) -> int:
    """Keys command handler.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    config = load_config(args)
    if config is None:
        return 1

    credential = config.get_credential(args.id)
    if credential is None:
        print(f"Credential not found: {args.id}", file=sys.stderr)
        return 1

    private_keys = credential.get_private_keys()
    if not private_keys:
        print(f"No private keys resolved for {args.id}", file=sys.stderr)
        return 1

    if args.show:
        print("\n".join(key.rstrip("\n") for key in private_keys))
        return 0

    secret = credential.get_passphrase()
    passphrase = secret.get_secret_value() if secret else None
    for private_key in private_keys:
        try:
            info = describe_private_key(private_key, passphrase)
        except KeyConversionError as e:
            print(f"(unreadable key: {e})")
            continue
        comment = info.comment or "no comment"
        print(f"{info.bits} {info.fingerprint} {comment} ({info.algorithm})")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert command handler.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    source = Path(args.source)
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Could not read {source}: {e}", file=sys.stderr)
        return 1

    if not is_putty_key(text):
        print(f"Not a PuTTY key file: {source}", file=sys.stderr)
        return 1

    passphrase = os.environ.get(args.passphrase_env) if args.passphrase_env else None
    try:
        converted = normalize_private_key(text, passphrase)
    except KeyConversionError as e:
        print(f"Conversion failed: {e}", file=sys.stderr)
        return 1

    if args.output is None:
        sys.stdout.write(converted)
        return 0

    output = Path(args.output)
    # Owner read/write only, before any key material is written
    mode = stat.S_IRUSR | stat.S_IWUSR
    try:
        fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    except OSError as e:
        print(f"Could not write {output}: {e}", file=sys.stderr)
        return 1
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        # The mode argument only applies when the file is created
        os.chmod(output, mode)
        f.write(converted)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="sshcred",
        description="SSH private key credentials",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list command
    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List credentials")
    list_parser.add_argument("--config", "-c", help="Credential definition file")
    list_parser.set_defaults(func=cmd_list)

    # keys command
    keys_parser = subparsers.add_parser("keys", help="Resolve and describe keys")
    keys_parser.add_argument("id", help="Credential id")
    keys_parser.add_argument("--config", "-c", help="Credential definition file")
    keys_parser.add_argument(
        "--show",
        action="store_true",
        help="Print the resolved key text instead of fingerprints",
    )
    keys_parser.set_defaults(func=cmd_keys)

    # convert command
    convert_parser = subparsers.add_parser(
        "convert", help="Convert a PuTTY key to OpenSSH format"
    )
    convert_parser.add_argument("source", help="PuTTY .ppk file")
    convert_parser.add_argument(
        "--output",
        "-o",
        help="Output file (stdout if not specified)",
    )
    convert_parser.add_argument(
        "--passphrase-env",
        metavar="VAR",
        help="Environment variable holding the key passphrase",
    )
    convert_parser.set_defaults(func=cmd_convert)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
