"""
Command-line front end.

Each subcommand maps onto one core operation. The CLI holds no logic of
its own beyond argument parsing and turning PegVaultError into a message
and a non-zero exit status.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path
from typing import Optional, Sequence

from pegvault import __version__
from pegvault.core.config import PegVaultConfig
from pegvault.core.exceptions import PegVaultError
from pegvault.core.logging import configure_package_logger
from pegvault.core.workspace import Workspace


def _passphrase(args: argparse.Namespace, prompt: str = "Admin password: ") -> str:
    if args.passphrase is not None:
        return args.passphrase
    return getpass.getpass(prompt)


def cmd_encrypt(ws: Workspace, args: argparse.Namespace) -> int:
    outcome = ws.encrypt(args.path, args.peg)
    print(f"Encrypted {outcome.source} -> {outcome.output} ({outcome.bytes_written} bytes)")
    if outcome.vaulted:
        print(f"Original moved to vault: {outcome.vault_path.name}")
    else:
        print(f"Warning: original left in place: {outcome.vault_error}", file=sys.stderr)
    return 0


def cmd_decrypt(ws: Workspace, args: argparse.Namespace) -> int:
    output = ws.decrypt(args.path, args.peg, args.output)
    print(f"Decrypted {args.path} -> {output}")
    return 0


def cmd_list(ws: Workspace, args: argparse.Namespace) -> int:
    entries = ws.vault.list_entries()
    if not entries:
        print("Vault is empty.")
        return 0
    for entry in entries:
        print(f"{entry.name}\t{entry.size}\t{entry.modified:%Y-%m-%d %H:%M:%S}")
    return 0


def cmd_retrieve(ws: Workspace, args: argparse.Namespace) -> int:
    destination = ws.retrieve(args.name, args.destination, _passphrase(args))
    print(f"File '{args.name}' retrieved to '{destination}'.")
    return 0


def cmd_history(ws: Workspace, args: argparse.Namespace) -> int:
    text = ws.read_history(_passphrase(args))
    print(text.rstrip("\n") if text else "History is empty.")
    return 0


def cmd_digest(ws: Workspace, args: argparse.Namespace) -> int:
    for path in args.paths:
        print(f"{ws.verifier.digest(path)}  {path}")
    return 0


def cmd_compare(ws: Workspace, args: argparse.Namespace) -> int:
    if args.binary:
        result = ws.verifier.compare_binary(args.first, args.second)
        for label, exists, size, digest, error in (
            ("A", result.exists_a, result.size_a, result.digest_a, result.error_a),
            ("B", result.exists_b, result.size_b, result.digest_b, result.error_b),
        ):
            if error:
                print(f"{label}: {error}")
            else:
                print(f"{label}: {size} bytes, sha256 {digest}")
        print(f"Sizes match: {result.sizes_match}; digests match: {result.digests_match}")
        return 0 if result.identical else 1

    result = ws.verifier.compare_text(args.first, args.second, args.max_bytes)
    if not result.readable:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print(f"Match: {result.match_percentage:.2f}%")
    if result.first_diff_offset != -1:
        print(f"First difference at byte {result.first_diff_offset}")
    return 0 if result.identical else 1


def cmd_verify(ws: Workspace, args: argparse.Namespace) -> int:
    result = ws.verify(args.name, args.external, args.peg)
    if not result.readable:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print(f"Match: {result.match_percentage:.2f}%")
    if result.identical:
        print(f"'{args.external}' is '{args.name}' encrypted with peg {args.peg}.")
        return 0
    print(f"First difference at byte {result.first_diff_offset}")
    return 1


def cmd_set_admin_password(ws: Workspace, args: argparse.Namespace) -> int:
    if ws.admin.is_configured:
        current = args.current
        if current is None:
            current = getpass.getpass("Current admin password: ")
        ws.admin.require(current, action="change admin password")

    new = args.passphrase
    if new is None:
        new = getpass.getpass("New admin password: ")
        if getpass.getpass("Repeat new admin password: ") != new:
            print("Error: passwords do not match.", file=sys.stderr)
            return 1
    try:
        ws.admin.set_passphrase(new)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print("Admin password updated.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pegvault",
        description="Peg-shift file obfuscation with a private vault for originals",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--base-dir",
        type=Path,
        help="Directory holding the vault and history (default: cwd); cipher and logging environment overrides still apply",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_enc = sub.add_parser("encrypt", help="Encrypt a file and vault the original")
    p_enc.add_argument("path", type=Path, help="File to encrypt")
    p_enc.add_argument("--peg", type=int, required=True, help="Shift key")
    p_enc.set_defaults(func=cmd_encrypt)

    p_dec = sub.add_parser("decrypt", help="Decrypt a file")
    p_dec.add_argument("path", type=Path, help="Encrypted file")
    p_dec.add_argument("--peg", type=int, required=True, help="Shift key")
    p_dec.add_argument("-o", "--output", type=Path, help="Output path (default: name without prefix, refused if it exists)")
    p_dec.set_defaults(func=cmd_decrypt)

    p_ls = sub.add_parser("list", help="List vaulted originals")
    p_ls.set_defaults(func=cmd_list)

    p_get = sub.add_parser("retrieve", help="Copy an original out of the vault (admin)")
    p_get.add_argument("name", help="Filename in the vault")
    p_get.add_argument("destination", type=Path, help="Where to write the copy")
    p_get.add_argument("--passphrase", help="Admin password (prompted if omitted)")
    p_get.set_defaults(func=cmd_retrieve)

    p_hist = sub.add_parser("history", help="Show the operation history (admin)")
    p_hist.add_argument("--passphrase", help="Admin password (prompted if omitted)")
    p_hist.set_defaults(func=cmd_history)

    p_dig = sub.add_parser("digest", help="Print SHA-256 digests")
    p_dig.add_argument("paths", type=Path, nargs="+")
    p_dig.set_defaults(func=cmd_digest)

    p_cmp = sub.add_parser("compare", help="Compare two files")
    p_cmp.add_argument("first", type=Path)
    p_cmp.add_argument("second", type=Path)
    p_cmp.add_argument("--binary", action="store_true", help="Compare sizes and digests")
    p_cmp.add_argument("--max-bytes", type=int, help="Bytes loaded per file for text comparison")
    p_cmp.set_defaults(func=cmd_compare)

    p_ver = sub.add_parser("verify", help="Check an external file against a vaulted original")
    p_ver.add_argument("name", help="Filename in the vault")
    p_ver.add_argument("external", type=Path, help="Encrypted file to check")
    p_ver.add_argument("--peg", type=int, required=True, help="Shift key")
    p_ver.set_defaults(func=cmd_verify)

    p_adm = sub.add_parser("set-admin-password", help="Set or change the admin password")
    p_adm.add_argument("--passphrase", help="New admin password (prompted if omitted)")
    p_adm.add_argument("--current", help="Current admin password (prompted if needed)")
    p_adm.set_defaults(func=cmd_set_admin_password)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.base_dir is not None:
        config = PegVaultConfig.load(base_dir=args.base_dir)
    else:
        config = PegVaultConfig.get_instance()
    config.ensure_directories()
    configure_package_logger(config)

    ws = Workspace.from_config(config)
    try:
        return args.func(ws, args)
    except PegVaultError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
