"""bundle.py -- Split Sigstore bundles into DSSE signatures and back.

A Sigstore bundle (v0.3 JSON) looks like:

    {
      "mediaType": "application/vnd.dev.sigstore.bundle.v0.3+json",
      "verificationMaterial": {"certificate": ..., "tlogEntries": [...], ...},
      "messageSignature": {"messageDigest": {...}, "signature": "<b64>"}
    }

The DSSE signature stores the ``messageSignature`` object (canonical JSON,
base64) in ``sig`` and the ``verificationMaterial`` object in the signature
extension, so a verifier can rebuild the bundle without the original
response.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from .canonical_json import canonical_bytes
from .dsse import Extension, Signature, b64decode, b64encode
from .errors import DecodeError, SigningError, VerificationError

EXTENSION_KIND = "application/vnd.dev.sigstore.verificationmaterial;version=0.3"
BUNDLE_MEDIA_TYPE = "application/vnd.dev.sigstore.bundle.v0.3+json"


def _as_bundle_dict(bundle: Any) -> Dict[str, Any]:
    if isinstance(bundle, (bytes, str)):
        try:
            bundle = json.loads(bundle)
        except ValueError as exc:
            raise SigningError(f"signing response is not valid JSON: {exc}") from exc
    if not isinstance(bundle, dict):
        raise SigningError("signing response must be a JSON object")
    return bundle


def signature_from_bundle(bundle: Any, key_id: str = "") -> Signature:
    """Build a DSSE Signature from a Sigstore bundle.

    Args:
        bundle:  Bundle as a JSON object, or its JSON text.
        key_id:  Key ID reported by the signer.

    Raises:
        SigningError: if the bundle lacks a message signature or
                      verification material.
    """
    doc = _as_bundle_dict(bundle)

    message_signature = doc.get("messageSignature")
    if not isinstance(message_signature, dict) or not message_signature.get("signature"):
        raise SigningError("bundle has no messageSignature.signature")

    material = doc.get("verificationMaterial")
    if not isinstance(material, dict) or not material:
        raise SigningError("bundle has no verificationMaterial")

    return Signature(
        sig=b64encode(canonical_bytes(message_signature)),
        keyid=key_id,
        extension=Extension(kind=EXTENSION_KIND, ext=json.loads(json.dumps(material))),
    )


def bundle_from_signature(signature: Signature, media_type: Optional[str] = None) -> Dict[str, Any]:
    """Rebuild the Sigstore bundle a signature was produced from.

    Raises:
        VerificationError: if the signature carries no Sigstore extension.
        DecodeError:       if ``sig`` is not base64 of a JSON object.
    """
    ext = signature.extension
    if ext is None or ext.kind != EXTENSION_KIND:
        found = ext.kind if ext is not None else "none"
        raise VerificationError(f"signature has no Sigstore verification material (extension: {found})")

    raw = b64decode(signature.sig, "bundle signature")
    try:
        message_signature = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"bundle signature is not JSON: {exc}") from exc
    if not isinstance(message_signature, dict):
        raise DecodeError("bundle signature must be a JSON object")

    return {
        "mediaType": media_type or BUNDLE_MEDIA_TYPE,
        "verificationMaterial": ext.ext,
        "messageSignature": message_signature,
    }
