#!/usr/bin/env python3
"""
cli.py — dssekit command line

Commands:
  sign      Create a signed DSSE envelope, or add a signature to one
  verify    Verify envelope signatures against one or more keys
  cat       Print parts of one or more envelopes
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .context import Context
from .dsse import Envelope
from .errors import DsseError
from .keys import load_signer, load_verifier
from .signerverifier import Signer, Verifier
from .signing import SignOptions, sign_file
from .sigstore_signer import FULCIO_PREFIX, SigstoreSigner, SigstoreVerifier
from .verify import EnvelopeVerifier


def _fail_with_error(err: DsseError) -> None:
    """Print a structured error message from a ``DsseError`` and exit.

    Args:
        err: Structured error raised by the envelope core.

    Returns:
        None: This function terminates the process.
    """
    context = f" Context: {err.context}." if err.context else ""
    print(f"ERROR: {err.code}. {err.message}{context}", file=sys.stderr)
    sys.exit(1)


def _cli_error(what: str, why: str, fix: str) -> None:
    """Print a CLI error with a suggested fix and exit.

    Returns:
        None: This function terminates the process.
    """
    print(f"ERROR: {what}. {why}. Fix: {fix}.", file=sys.stderr)
    sys.exit(1)


def _read_envelope(path: str) -> Envelope:
    return Envelope.from_json(Path(path).read_bytes())


def _get_signer(args: argparse.Namespace) -> Signer:
    if args.sigstore:
        return SigstoreSigner(staging=args.staging)
    return load_signer(args.key)


def _load_verifiers(refs: Sequence[str], staging: bool = False) -> List[Verifier]:
    """Resolve ``-k`` references: key file paths or ``fulcio:<identity>::<issuer>``."""
    verifiers: List[Verifier] = []
    for ref in refs:
        if ref.strip().startswith(FULCIO_PREFIX):
            verifiers.append(SigstoreVerifier.from_reference(ref, staging=staging))
        else:
            verifiers.append(load_verifier(ref))
    return verifiers


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle ``dssekit sign``.

    Args:
        args: Parsed CLI arguments with the input path, signer selection
            and envelope options.
    """
    options = SignOptions(
        payload_type=args.payload_type,
        output_path=args.output,
        canonicalize_json=args.canonicalize_json,
    )
    signer = _get_signer(args)
    result = sign_file(Context.background(), args.path, signer, options)
    print(f"Envelope written to: {result.output_path} ({len(result.envelope.signatures)} signature(s))")


def cmd_verify(args: argparse.Namespace) -> None:
    """Handle ``dssekit verify``. Every listed envelope must verify."""
    verifiers = _load_verifiers(args.key, staging=args.staging)
    envelope_verifier = EnvelopeVerifier(verifiers, threshold=args.threshold)
    ctx = Context.background()
    for path in args.paths:
        accepted = envelope_verifier.verify(ctx, _read_envelope(path))
        print(f"Verified {path}: {len(accepted)} of {args.threshold} required signature(s)")
        for key in accepted:
            print(f"\t{key.key_id}")


def _print_summary(path: str, envelope: Envelope) -> None:
    declared = [s.keyid for s in envelope.signatures if s.keyid]
    anonymous = len(envelope.signatures) - len(declared)
    print(f"Summary for {path}:")
    print(f"\tPayload Type: {envelope.payload_type}")
    print(f"\tSignatures without key IDs: {anonymous}")
    if declared:
        print("\tSignatures from declared key IDs:")
        for key_id in declared:
            print(f"\t\t{key_id}")


def cmd_cat(args: argparse.Namespace) -> None:
    """Handle ``dssekit cat``; the summary is the default view."""
    if args.decode_base64 and not args.payload:
        _cli_error(
            "Invalid flags",
            "--decode-base64 only applies to --payload",
            "add --payload or drop --decode-base64",
        )

    for path in args.paths:
        envelope = _read_envelope(path)
        if args.payload:
            if args.decode_base64:
                sys.stdout.buffer.write(envelope.decode_payload() + b"\n")
                sys.stdout.flush()
            else:
                print(envelope.payload)
        elif args.payload_type:
            print(envelope.payload_type)
        else:
            _print_summary(path, envelope)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dssekit", description="Sign, verify, and inspect DSSE envelopes"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # sign
    p_sign = sub.add_parser("sign", help="Create signed DSSE envelope for an arbitrary payload")
    p_sign.add_argument("path", help="Payload file, or existing envelope to add a signature to")
    signer_group = p_sign.add_mutually_exclusive_group(required=True)
    signer_group.add_argument("-k", "--key", help="Path of SSH or PEM private key to sign with")
    signer_group.add_argument("--sigstore", action="store_true", help="Sign with Sigstore")
    p_sign.add_argument("-t", "--payload-type", help="Payload type for a new DSSE envelope")
    p_sign.add_argument("-o", "--output", help="Output path for a new envelope (default: <path>.dsse)")
    p_sign.add_argument(
        "--canonicalize-json", action="store_true",
        help="Encode payload using canonical JSON (payload MUST be JSON)",
    )
    p_sign.add_argument("--staging", action="store_true", help="Use Sigstore staging environment")

    # verify
    p_verify = sub.add_parser("verify", help="Verify signatures in DSSE envelopes using specified keys")
    p_verify.add_argument("paths", nargs="+", help="Envelope file(s)")
    p_verify.add_argument(
        "-k", "--key", action="append", required=True,
        help="Key to verify with; repeatable (sigstore: fulcio:<identity>::<issuer>)",
    )
    p_verify.add_argument("--threshold", type=int, default=1, help="Signatures required (default: 1)")
    p_verify.add_argument("--staging", action="store_true", help="Use Sigstore staging environment")

    # cat
    p_cat = sub.add_parser("cat", help="Print specified parts of DSSE envelopes")
    p_cat.add_argument("paths", nargs="+", help="Envelope file(s)")
    view = p_cat.add_mutually_exclusive_group()
    view.add_argument("--summary", action="store_true", help="Summary of envelope (default)")
    view.add_argument("-p", "--payload", action="store_true", help="Envelope payload")
    view.add_argument("-t", "--payload-type", action="store_true", help="Envelope's payload type")
    p_cat.add_argument("-d", "--decode-base64", action="store_true", help="Base64 decode payload")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "sign": cmd_sign(args)
        elif args.command == "verify": cmd_verify(args)
        elif args.command == "cat": cmd_cat(args)
    except DsseError as err:
        _fail_with_error(err)
    except ImportError as err:
        _cli_error("Missing optional dependency", str(err).splitlines()[0], "install the extra named above")
    except OSError as err:
        _cli_error("File access failed", str(err), "check the path and permissions")


if __name__ == "__main__":
    main()
