"""
keys.py — Key-pair Signer/Verifier capabilities

Implements:
  - Key loading from OpenSSH or PEM files (private and public)
  - Ed25519, ECDSA and RSA-PSS signing and verification
  - Key ID derivation from the public key

Dependencies:
  - cryptography >= 41.0 (pip install cryptography)

Signature schemes:
  - Ed25519: pure Ed25519 (RFC 8032)
  - ECDSA:   DER-encoded signature, SHA-256/384/512 chosen by curve size
  - RSA:     RSASSA-PSS, SHA-256, MGF1(SHA-256), salt length = digest length
"""

from __future__ import annotations
import hashlib
import logging
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
    load_ssh_private_key,
    load_ssh_public_key,
)

from .context import Context
from .dsse import Extension
from .errors import (
    CancelledError,
    KeyResolutionError,
    SigningCancelledError,
    SigningError,
    VerificationError,
)
from .signerverifier import LocalKeySigner, Verifier

logger = logging.getLogger(__name__)

PrivateKey = Union[ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]
PublicKey = Union[ed25519.Ed25519PublicKey, ec.EllipticCurvePublicKey, rsa.RSAPublicKey]

KEY_TYPES = ("ed25519", "ecdsa", "rsa")


# ---------------------------------------------------------------------------
# Key ID derivation
# ---------------------------------------------------------------------------

def key_id_from_public_key(public_key: PublicKey) -> str:
    """
    Derive a stable key ID from a public key.
    Format: lowercase hex SHA-256 of the DER SubjectPublicKeyInfo encoding.
    """
    der = public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    return hashlib.sha256(der).hexdigest()


def key_type_of(key: Union[PrivateKey, PublicKey]) -> str:
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey)):
        return "ed25519"
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return "ecdsa"
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return "rsa"
    raise KeyResolutionError(f"unsupported key type: {type(key).__name__}")


def _ecdsa_hash(curve: ec.EllipticCurve) -> hashes.HashAlgorithm:
    if curve.key_size <= 256:
        return hashes.SHA256()
    if curve.key_size <= 384:
        return hashes.SHA384()
    return hashes.SHA512()


def _pss_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH)


# ---------------------------------------------------------------------------
# Signer / Verifier
# ---------------------------------------------------------------------------

class KeySignerVerifier(LocalKeySigner, Verifier):
    """Signer and verifier over a single key pair.

    Built from a public key alone it can only verify; sign() then raises
    SigningError.
    """

    def __init__(self, public_key: PublicKey, private_key: Optional[PrivateKey] = None):
        self.key_type = key_type_of(public_key)
        self.public_key = public_key
        self.private_key = private_key
        self._key_id = key_id_from_public_key(public_key)

    @classmethod
    def from_private_key(cls, private_key: PrivateKey) -> "KeySignerVerifier":
        return cls(private_key.public_key(), private_key)

    @classmethod
    def generate(cls, key_type: str = "ed25519") -> "KeySignerVerifier":
        """Generate a fresh key pair (ed25519, ecdsa P-256, or rsa 3072)."""
        if key_type == "ed25519":
            sk: PrivateKey = ed25519.Ed25519PrivateKey.generate()
        elif key_type == "ecdsa":
            sk = ec.generate_private_key(ec.SECP256R1())
        elif key_type == "rsa":
            sk = rsa.generate_private_key(public_exponent=65537, key_size=3072)
        else:
            raise KeyResolutionError(f"unknown key type {key_type!r}, expected one of {KEY_TYPES}")
        return cls.from_private_key(sk)

    def public_only(self) -> "KeySignerVerifier":
        return KeySignerVerifier(self.public_key)

    def key_id(self) -> str:
        return self._key_id

    def sign(self, ctx: Context, data: bytes) -> bytes:
        try:
            ctx.check()
        except CancelledError as exc:
            raise SigningCancelledError(exc.context) from exc
        if self.private_key is None:
            raise SigningError(f"key {self._key_id} has no private half")

        sk = self.private_key
        try:
            if isinstance(sk, ed25519.Ed25519PrivateKey):
                return sk.sign(data)
            if isinstance(sk, ec.EllipticCurvePrivateKey):
                return sk.sign(data, ec.ECDSA(_ecdsa_hash(sk.curve)))
            return sk.sign(data, _pss_padding(), hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningError(f"{self.key_type} signing failed: {exc}") from exc

    def verify(
        self,
        ctx: Context,
        key_id: str,
        data: bytes,
        signature: bytes,
        extension: Optional[Extension] = None,
    ) -> None:
        ctx.check()
        if key_id and key_id != self._key_id:
            raise VerificationError(f"signature key ID {key_id} does not match {self._key_id}")

        pk = self.public_key
        try:
            if isinstance(pk, ed25519.Ed25519PublicKey):
                pk.verify(signature, data)
            elif isinstance(pk, ec.EllipticCurvePublicKey):
                pk.verify(signature, data, ec.ECDSA(_ecdsa_hash(pk.curve)))
            else:
                pk.verify(signature, data, _pss_padding(), hashes.SHA256())
        except InvalidSignature as exc:
            raise VerificationError(f"{self.key_type} signature invalid for key {self._key_id}") from exc
        except ValueError as exc:
            raise VerificationError(f"malformed {self.key_type} signature: {exc}") from exc
        logger.debug("Signature verified with key %s", self._key_id)


# ---------------------------------------------------------------------------
# Loading from disk
# ---------------------------------------------------------------------------

def _read_key_file(path: Union[str, Path]) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise KeyResolutionError(f"unable to read key file '{path}': {exc}") from exc


def _parse_private_key(data: bytes, password: Optional[bytes]) -> PrivateKey:
    loaders = (load_ssh_private_key, load_pem_private_key)
    last_exc: Optional[Exception] = None
    for loader in loaders:
        try:
            key = loader(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            last_exc = exc
            continue
        key_type_of(key)
        return key  # type: ignore[return-value]
    raise KeyResolutionError(f"not a supported OpenSSH or PEM private key: {last_exc}")


def load_signer(path: Union[str, Path], password: Optional[bytes] = None) -> KeySignerVerifier:
    """Load a private key (OpenSSH or PEM) and return a signer for it."""
    try:
        sk = _parse_private_key(_read_key_file(path), password)
    except KeyResolutionError as exc:
        raise KeyResolutionError(f"unable to load '{path}': {exc.context}") from exc
    return KeySignerVerifier.from_private_key(sk)


def load_verifier(path: Union[str, Path]) -> KeySignerVerifier:
    """Load a public key and return a verify-only capability.

    Accepts OpenSSH public keys (``ssh-ed25519 AAAA...``), PEM public keys,
    and, as a fallback, unencrypted private keys whose public half is used.
    """
    data = _read_key_file(path)
    for loader in (load_ssh_public_key, load_pem_public_key):
        try:
            pk = loader(data)
        except (ValueError, UnsupportedAlgorithm):
            continue
        try:
            return KeySignerVerifier(pk)  # type: ignore[arg-type]
        except KeyResolutionError as exc:
            raise KeyResolutionError(f"unable to load '{path}': {exc.context}") from exc
    try:
        sk = _parse_private_key(data, None)
    except KeyResolutionError as exc:
        raise KeyResolutionError(f"unable to load '{path}': no supported public or private key found") from exc
    return KeySignerVerifier(sk.public_key())
