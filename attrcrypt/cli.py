"""
Command-line interface for encrypting attributes of JSON records.

Reads a JSON object, encrypts or decrypts the named attribute paths with the
keys from a JSON key file, and writes the resulting JSON.

Key file format::

    {"keys": {"k1": "<base64 32-byte key>"}, "keyId": "k1", "verifyId": "id"}
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import os
import sys
from dataclasses import replace

from .core.ciphers import DEFAULT_CIPHER
from .core.codec import EncryptedAttributes
from .core.config import DEFAULT_IDENTITY_ATTRIBUTE, EncryptionConfig
from .core.errors import (
    AttrCryptError,
    ConfigurationError,
    IdentityMismatchError,
    IntegrityError,
    MissingIdentityError,
    TypeMismatchError,
    UnknownKeyError,
)

KEYS_FILE_ENV = "ATTRCRYPT_KEYS_FILE"

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attrcrypt",
        description="attrcrypt: field-level AES-256-GCM encryption of JSON records",
    )
    parser.add_argument(
        "-o", "--operation",
        choices=["encrypt", "decrypt"],
        help="Operation to perform",
    )
    parser.add_argument(
        "-d", "--data",
        help="JSON record as a string. Use '-' to read from stdin (the default).",
    )
    parser.add_argument(
        "-f", "--file",
        help="Path to a JSON record file.",
    )
    parser.add_argument(
        "--output",
        help="Write the resulting record to this file instead of stdout.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite output file if it already exists.",
    )
    parser.add_argument(
        "-a", "--attribute",
        action="append",
        default=[],
        metavar="PATH",
        help="Dotted attribute path to process (repeatable)",
    )
    parser.add_argument(
        "--keys-file",
        default=os.environ.get(KEYS_FILE_ENV),
        help=f"JSON key file (default: ${KEYS_FILE_ENV})",
    )
    parser.add_argument(
        "--key-id",
        help="Override the key id used for new encryptions",
    )
    parser.add_argument(
        "--verify-id",
        nargs="?",
        const=DEFAULT_IDENTITY_ATTRIBUTE,
        metavar="ATTR",
        help=f"Bind ciphertext to the record identity attribute (default: {DEFAULT_IDENTITY_ATTRIBUTE})",
    )
    parser.add_argument(
        "--generate-key",
        action="store_true",
        help="Print a fresh base64-encoded 256-bit key and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log each processed attribute to stderr",
    )
    return parser


def _print_status(msg: str, error: bool = False) -> None:
    stream = sys.stderr if error else sys.stdout
    print(msg, file=stream)


def _fail(msg: str) -> None:
    _print_status(f"Error: {msg}", error=True)
    sys.exit(1)


def _suggest_fix(exc: AttrCryptError) -> str:
    """Map an error to a short hint for the user."""
    if isinstance(exc, UnknownKeyError):
        return f"add key {exc.key_id!r} back to the key file to decrypt this value"
    if isinstance(exc, IdentityMismatchError):
        return "the value was encrypted for a different record"
    if isinstance(exc, MissingIdentityError):
        return f"the record needs a '{exc.attribute}' value, or drop --verify-id"
    if isinstance(exc, IntegrityError):
        return "the value is corrupted or was tampered with"
    if isinstance(exc, TypeMismatchError):
        return "only string attributes can be encrypted"
    if isinstance(exc, ConfigurationError):
        return "check the key file"
    return ""


def _read_record(args: argparse.Namespace) -> dict:
    if args.file:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as exc:
            _fail(f"cannot read {args.file}: {exc.strerror}")
    elif args.data and args.data != "-":
        text = args.data
    else:
        text = sys.stdin.read()

    try:
        record = json.loads(text)
    except json.JSONDecodeError as exc:
        _fail(f"input is not valid JSON: {exc.msg}")
    if not isinstance(record, dict):
        _fail("input must be a JSON object")
    return record


def _load_config(args: argparse.Namespace) -> EncryptionConfig:
    if not args.keys_file:
        raise ConfigurationError(f"No key file given (use --keys-file or ${KEYS_FILE_ENV})")
    config = EncryptionConfig.load(args.keys_file)
    if args.key_id:
        config = config.with_current_key(args.key_id)
    if args.verify_id:
        config = replace(config, verify_id=args.verify_id)
    return config


def _write_output(args: argparse.Namespace, record: dict) -> None:
    text = json.dumps(record, indent=2, ensure_ascii=False)
    if not args.output:
        print(text)
        return
    if os.path.exists(args.output) and not args.force:
        _fail(f"{args.output} already exists (use --force to overwrite)")
    with open(args.output, "w", encoding="utf-8") as f:
        f.write(text + "\n")
    _print_status(f"Wrote {args.output}", error=True)


def run_cli(argv: list[str] | None = None) -> None:
    """Run the CLI interface."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # --- Generate key ---
    if args.generate_key:
        print(base64.b64encode(os.urandom(DEFAULT_CIPHER.key_size)).decode("ascii"))
        return

    if not args.operation:
        parser.error("-o/--operation is required")
    if not args.attribute:
        parser.error("at least one -a/--attribute is required")

    record = _read_record(args)

    try:
        codec = EncryptedAttributes(args.attribute, _load_config(args))
        if args.operation == "encrypt":
            codec.encrypt_all(record)
        else:
            codec.decrypt_all(record)
    except AttrCryptError as exc:
        logger.debug("%s failed", args.operation, exc_info=True)
        hint = _suggest_fix(exc)
        _fail(f"{exc}" + (f" ({hint})" if hint else ""))

    _write_output(args, record)
