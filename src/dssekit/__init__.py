"""dssekit public API.

Sign arbitrary payloads into DSSE envelopes and verify them against one or
more keys under a threshold.

Example:
    from dssekit import Context, KeySignerVerifier, SignOptions, sign, verify_envelope

    key = KeySignerVerifier.generate("ed25519")
    result = sign(Context.background(), b"hello", key,
                  SignOptions(payload_type="text/plain"))
    verify_envelope(Context.background(), result.envelope, [key.public_only()])
"""

from .bundle import EXTENSION_KIND, bundle_from_signature, signature_from_bundle
from .canonical_json import canonical_bytes, canonical_dumps, canonicalize_json_bytes
from .context import Context
from .dsse import Envelope, Extension, Signature, pae
from .errors import (
    CancelledError,
    ConfigError,
    DecodeError,
    DsseError,
    KeyResolutionError,
    SerializationError,
    SigningCancelledError,
    SigningError,
    VerificationError,
)
from .keys import KeySignerVerifier, key_id_from_public_key, load_signer, load_verifier
from .signerverifier import BundleSigner, LocalKeySigner, Signer, Verifier
from .signing import (
    SigningMode,
    SigningPlan,
    SigningResult,
    SignOptions,
    classify_input,
    prepare,
    sign,
    sign_envelope,
    sign_file,
)
from .sigstore_signer import SigstoreSigner, SigstoreVerifier, parse_fulcio_reference
from .verify import AcceptedKey, EnvelopeVerifier, verify_envelope

__version__ = "0.1.0"

__all__ = [
    "AcceptedKey",
    "BundleSigner",
    "CancelledError",
    "ConfigError",
    "Context",
    "DecodeError",
    "DsseError",
    "EXTENSION_KIND",
    "Envelope",
    "EnvelopeVerifier",
    "Extension",
    "KeyResolutionError",
    "KeySignerVerifier",
    "LocalKeySigner",
    "SerializationError",
    "SignOptions",
    "Signature",
    "Signer",
    "SigningCancelledError",
    "SigningError",
    "SigningMode",
    "SigningPlan",
    "SigningResult",
    "SigstoreSigner",
    "SigstoreVerifier",
    "VerificationError",
    "Verifier",
    "bundle_from_signature",
    "canonical_bytes",
    "canonical_dumps",
    "canonicalize_json_bytes",
    "classify_input",
    "key_id_from_public_key",
    "load_signer",
    "load_verifier",
    "pae",
    "parse_fulcio_reference",
    "prepare",
    "sign",
    "sign_envelope",
    "sign_file",
    "signature_from_bundle",
    "verify_envelope",
]
