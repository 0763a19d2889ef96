"""
signing.py — Create DSSE envelopes or add signatures to existing ones

The input bytes are classified once:

  NEW      the input is not an envelope. The input becomes the payload,
           a payload type is required, and the output defaults to
           ``<input>.dsse``.
  AUGMENT  the input is an envelope. Its payload and payload type are kept
           as they are, the new signature is appended, and the envelope is
           written back over the input. Payload type, output path and JSON
           canonicalization cannot be requested in this mode.

Nothing is written until signing and serialization have both succeeded.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from .bundle import signature_from_bundle
from .canonical_json import canonicalize_json_bytes
from .context import Context
from .dsse import Envelope, Signature, b64encode, pae
from .errors import ConfigError, DecodeError
from .signerverifier import BundleSigner, Signer

logger = logging.getLogger(__name__)

ENVELOPE_SUFFIX = ".dsse"


class SigningMode(enum.Enum):
    NEW = "new"
    AUGMENT = "augment"


@dataclass
class SignOptions:
    payload_type: Optional[str] = None
    output_path: Optional[Union[str, Path]] = None
    canonicalize_json: bool = False


@dataclass
class SigningPlan:
    mode: SigningMode
    envelope: Envelope
    payload_type: str
    signable: bytes
    output_path: Optional[Path]


@dataclass
class SigningResult:
    mode: SigningMode
    envelope: Envelope
    data: bytes
    output_path: Optional[Path]


def classify_input(data: bytes) -> Tuple[SigningMode, Optional[Envelope]]:
    """Return AUGMENT and the parsed envelope if *data* is one, else NEW."""
    try:
        envelope = Envelope.from_json(data)
    except DecodeError:
        return SigningMode.NEW, None
    return SigningMode.AUGMENT, envelope


def prepare(
    data: bytes,
    options: SignOptions,
    input_path: Optional[Union[str, Path]] = None,
) -> SigningPlan:
    """Resolve the signing mode and check *options* against it.

    Raises:
        ConfigError: on options that conflict with the mode, or a missing
                     payload type for a new envelope.
        DecodeError: if an existing envelope's payload is not base64, or
                     canonicalization is requested for non-JSON input.
    """
    mode, existing = classify_input(data)

    if existing is not None:
        logger.debug("Envelope exists, adding signature...")
        if options.canonicalize_json:
            raise ConfigError("cannot canonicalize JSON when signing an existing DSSE envelope")
        if options.output_path:
            raise ConfigError("cannot set an output path when signing an existing DSSE envelope")
        if options.payload_type:
            raise ConfigError("cannot set a payload type when signing an existing DSSE envelope")
        return SigningPlan(
            mode=mode,
            envelope=existing,
            payload_type=existing.payload_type,
            signable=existing.decode_payload(),
            output_path=Path(input_path) if input_path is not None else None,
        )

    logger.debug("Creating new envelope...")
    if not options.payload_type:
        raise ConfigError("a payload type is required to create a new DSSE envelope")

    signable = data
    if options.canonicalize_json:
        signable = canonicalize_json_bytes(signable)

    if options.output_path:
        output_path: Optional[Path] = Path(options.output_path)
    elif input_path is not None:
        output_path = Path(f"{input_path}{ENVELOPE_SUFFIX}")
    else:
        output_path = None

    return SigningPlan(
        mode=mode,
        envelope=Envelope.new(options.payload_type, signable),
        payload_type=options.payload_type,
        signable=signable,
        output_path=output_path,
    )


def sign_envelope(ctx: Context, envelope: Envelope, signer: Signer) -> Signature:
    """Sign *envelope*'s PAE with *signer* and append the signature.

    Bundle signers go through the bundle adapter; local key signers produce
    a plain signature.
    """
    signable = pae(envelope.payload_type, envelope.decode_payload())
    output = signer.sign(ctx, signable)
    key_id = signer.key_id()

    if isinstance(signer, BundleSigner):
        signature = signature_from_bundle(output, key_id)
    else:
        signature = Signature(sig=b64encode(output), keyid=key_id)

    envelope.add_signature(signature)
    logger.debug("Added signature from %r (%d total)", key_id, len(envelope.signatures))
    return signature


def sign(
    ctx: Context,
    data: bytes,
    signer: Signer,
    options: SignOptions,
    input_path: Optional[Union[str, Path]] = None,
) -> SigningResult:
    """Run the whole workflow in memory and return the serialized envelope."""
    plan = prepare(data, options, input_path)
    sign_envelope(ctx, plan.envelope, signer)
    return SigningResult(
        mode=plan.mode,
        envelope=plan.envelope,
        data=plan.envelope.to_json(),
        output_path=plan.output_path,
    )


def sign_file(
    ctx: Context,
    input_path: Union[str, Path],
    signer: Signer,
    options: SignOptions,
) -> SigningResult:
    """Sign the file at *input_path* and write the envelope to disk."""
    path = Path(input_path)
    result = sign(ctx, path.read_bytes(), signer, options, input_path=path)
    if result.output_path is None:
        raise ConfigError(f"no output path resolved for {path}")
    result.output_path.write_bytes(result.data)
    return result
