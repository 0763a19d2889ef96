"""
dsse.py — DSSE envelope data model and Pre-Authentication Encoding

Envelope JSON form:

    {
        "payload": "<base64(payload_bytes)>",
        "payloadType": "application/vnd.in-toto+json",
        "signatures": [
            {"keyid": "...", "sig": "<base64(sig_bytes)>",
             "extension": {"kind": "...", "ext": {...}}}
        ]
    }

Signatures never cover the JSON above. They cover PAE(payloadType, payload),
a length-prefixed byte string that cannot be produced by two different
(type, payload) pairs.
"""

from __future__ import annotations
import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import DecodeError, SerializationError

PAE_PREFIX = b"DSSEv1"


def pae(payload_type: str, payload: bytes) -> bytes:
    """Return the DSSEv1 Pre-Authentication Encoding of (payload_type, payload).

    ``DSSEv1 SP len(type) SP type SP len(payload) SP payload``, lengths in
    bytes as decimal ASCII.
    """
    type_bytes = payload_type.encode("utf-8")
    return b" ".join([
        PAE_PREFIX,
        str(len(type_bytes)).encode("ascii"),
        type_bytes,
        str(len(payload)).encode("ascii"),
        bytes(payload),
    ])


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str, what: str = "value") -> bytes:
    """Strict standard base64 decode; raises DecodeError on malformed input."""
    if not isinstance(text, str):
        raise DecodeError(f"{what} must be a base64 string, got {type(text).__name__}")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"{what} is not valid base64: {exc}") from exc


@dataclass(frozen=True)
class Extension:
    """Verification material attached to a signature (e.g. a Sigstore bundle's)."""
    kind: str
    ext: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "ext": self.ext}

    @classmethod
    def from_dict(cls, data: Any) -> "Extension":
        if not isinstance(data, dict):
            raise DecodeError("signature extension must be an object")
        kind = data.get("kind", "")
        ext = data.get("ext", {})
        if not isinstance(kind, str):
            raise DecodeError("signature extension 'kind' must be a string")
        if not isinstance(ext, dict):
            raise DecodeError("signature extension 'ext' must be an object")
        return cls(kind=kind, ext=ext)


@dataclass(frozen=True)
class Signature:
    sig: str
    keyid: str = ""
    extension: Optional[Extension] = None

    @property
    def sig_bytes(self) -> bytes:
        return b64decode(self.sig, "signature")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"keyid": self.keyid, "sig": self.sig}
        if self.extension is not None:
            out["extension"] = self.extension.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "Signature":
        if not isinstance(data, dict):
            raise DecodeError("signature entry must be an object")
        keyid = data.get("keyid") or ""
        sig = data.get("sig", "")
        if not isinstance(keyid, str):
            raise DecodeError("signature 'keyid' must be a string")
        if not isinstance(sig, str):
            raise DecodeError("signature 'sig' must be a string")
        ext_data = data.get("extension")
        extension = Extension.from_dict(ext_data) if ext_data is not None else None
        return cls(sig=sig, keyid=keyid, extension=extension)


@dataclass
class Envelope:
    """A typed payload and the ordered signatures over its PAE.

    ``payload_type`` and ``payload`` are fixed once the first signature is
    added; signatures are only ever appended.
    """
    payload_type: str
    payload: str
    _signatures: List[Signature] = field(default_factory=list)

    @classmethod
    def new(cls, payload_type: str, payload: bytes) -> "Envelope":
        return cls(payload_type=payload_type, payload=b64encode(payload))

    @property
    def signatures(self) -> List[Signature]:
        """Read-only snapshot of the signatures, in insertion order."""
        return list(self._signatures)

    def add_signature(self, signature: Signature) -> None:
        self._signatures.append(signature)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("payload_type", "payload") and self.__dict__.get("_signatures"):
            raise AttributeError(f"cannot change {name} of an envelope that has signatures")
        super().__setattr__(name, value)

    def decode_payload(self) -> bytes:
        return b64decode(self.payload, "envelope payload")

    def pae(self) -> bytes:
        """The bytes every signature in this envelope must cover."""
        return pae(self.payload_type, self.decode_payload())

    # ------------------------------------------------------------------
    # JSON form
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payload": self.payload,
            "payloadType": self.payload_type,
            "signatures": [s.to_dict() for s in self._signatures],
        }

    def to_json(self) -> bytes:
        try:
            return json.dumps(
                self.to_dict(),
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(str(exc)) from exc

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        if not isinstance(data, dict):
            raise DecodeError("envelope must be a JSON object")
        payload_type = data.get("payloadType")
        payload = data.get("payload")
        signatures = data.get("signatures")
        if not isinstance(payload_type, str):
            raise DecodeError("envelope 'payloadType' must be a string")
        if not isinstance(payload, str):
            raise DecodeError("envelope 'payload' must be a string")
        if not isinstance(signatures, list):
            raise DecodeError("envelope 'signatures' must be an array")
        return cls(
            payload_type=payload_type,
            payload=payload,
            _signatures=[Signature.from_dict(s) for s in signatures],
        )

    @classmethod
    def from_json(cls, data: bytes | str) -> "Envelope":
        try:
            doc = json.loads(data)
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            raise DecodeError(f"envelope is not valid JSON: {exc}") from exc
        return cls.from_dict(doc)
