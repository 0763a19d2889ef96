"""sigstore_signer.py -- Keyless signing and identity-based verification via Sigstore.

Optional integration — requires: pip install 'dssekit[sigstore]'

Signing obtains a short-lived Fulcio certificate for an OIDC identity and
records the signature in the Rekor transparency log. The response is a
Sigstore bundle, which the signing workflow splits into a DSSE signature
plus verification material (see bundle.py).

Verification rebuilds the bundle from the signature and its extension and
checks it against an expected identity and OIDC issuer, written on the
command line as ``fulcio:<identity>::<issuer>``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

from .bundle import bundle_from_signature
from .context import Context
from .dsse import Extension, Signature, b64encode
from .errors import (
    CancelledError,
    ConfigError,
    KeyResolutionError,
    SigningCancelledError,
    SigningError,
    VerificationError,
)
from .signerverifier import BundleSigner, Verifier

logger = logging.getLogger(__name__)

_SIGSTORE_AVAILABLE = False
_SIGSTORE_IMPORT_ERROR: str = ""

try:
    import sigstore as _sigstore_module  # noqa: F401  (presence-check only)
    _SIGSTORE_AVAILABLE = True
except ImportError as _exc:
    _SIGSTORE_IMPORT_ERROR = str(_exc)


FULCIO_PREFIX = "fulcio:"


def _require_sigstore() -> None:
    if not _SIGSTORE_AVAILABLE:
        raise ImportError(
            "Sigstore signing requires: pip install 'dssekit[sigstore]'\n"
            f"  Underlying error: {_SIGSTORE_IMPORT_ERROR}"
        )


def parse_fulcio_reference(ref: str) -> Tuple[str, str]:
    """Split ``fulcio:<identity>::<issuer>`` into (identity, issuer).

    Raises:
        ConfigError: if *ref* is not in that form.
    """
    body = ref.strip()
    if not body.startswith(FULCIO_PREFIX):
        raise ConfigError(f"not a fulcio reference: {ref!r}")
    parts = body[len(FULCIO_PREFIX):].split("::")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ConfigError(f"invalid fulcio format: {ref!r}, expected fulcio:<identity>::<issuer>")
    return parts[0], parts[1]


# ---------------------------------------------------------------------------
# Network calls (extracted for testability)
# ---------------------------------------------------------------------------

def _detect_token() -> Optional[str]:
    """Internal: return an ambient OIDC token (CI environments), if any."""
    from sigstore.oidc import detect_credential
    return detect_credential()


def _token_identity(raw_token: str) -> str:
    """Internal: return the identity (email / workflow URI) a token asserts."""
    from sigstore.errors import Error as SigstoreError
    from sigstore.oidc import IdentityToken

    try:
        return IdentityToken(raw_token).identity
    except SigstoreError as exc:
        raise KeyResolutionError(f"OIDC token is malformed or expired: {exc}") from exc


def _sigstore_sign(payload: bytes, raw_token: str, staging: bool = False) -> str:
    """Internal: sign *payload* with Sigstore and return the bundle JSON."""
    from sigstore.errors import Error as SigstoreError
    from sigstore.models import ClientTrustConfig
    from sigstore.oidc import IdentityToken
    from sigstore.sign import SigningContext

    trust_config = ClientTrustConfig.staging() if staging else ClientTrustConfig.production()
    try:
        ctx = SigningContext.from_trust_config(trust_config)
        with ctx.signer(IdentityToken(raw_token)) as signer:
            bundle = signer.sign_artifact(payload)
    except (SigstoreError, OSError, ValueError) as exc:
        raise SigningError(f"Sigstore signing failed: {exc}") from exc
    return bundle.to_json()


def _sigstore_verify(
    payload: bytes,
    bundle_json: str,
    identity: str,
    issuer: str,
    staging: bool = False,
) -> None:
    """Internal: verify *payload* against a bundle for (identity, issuer)."""
    from sigstore.errors import Error as SigstoreError
    from sigstore.models import Bundle
    from sigstore.verify import Verifier as SigstoreVerifierImpl
    from sigstore.verify.policy import Identity

    try:
        bundle = Bundle.from_json(bundle_json)
        verifier = SigstoreVerifierImpl.staging() if staging else SigstoreVerifierImpl.production()
        verifier.verify_artifact(payload, bundle, Identity(identity=identity, issuer=issuer))
    except (SigstoreError, OSError, ValueError) as exc:
        raise VerificationError(f"Sigstore verification failed for {identity}: {exc}") from exc


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class SigstoreSigner(BundleSigner):
    """Keyless signer; the key ID is the identity asserted by the OIDC token.

    Args:
        identity_token: Raw OIDC token. If omitted, an ambient credential is
                        detected (e.g. GitHub Actions).
        staging:        Use the Sigstore staging environment.
    """

    def __init__(self, identity_token: Optional[str] = None, staging: bool = False):
        self._raw_token = identity_token
        self.staging = staging

    def _token(self) -> str:
        if self._raw_token is None:
            _require_sigstore()
            try:
                self._raw_token = _detect_token()
            except Exception as exc:  # detect_credential surfaces provider-specific errors
                raise KeyResolutionError(f"OIDC credential detection failed: {exc}") from exc
            if not self._raw_token:
                raise KeyResolutionError("no ambient OIDC credential found; pass an identity token")
        return self._raw_token

    def key_id(self) -> str:
        token = self._token()
        try:
            return _token_identity(token)
        except (ValueError, KeyError) as exc:
            raise KeyResolutionError(f"OIDC token has no usable identity: {exc}") from exc

    def sign(self, ctx: Context, data: bytes) -> Dict[str, Any]:
        _require_sigstore()
        try:
            ctx.check()
        except CancelledError as exc:
            raise SigningCancelledError(exc.context) from exc
        try:
            token = self._token()
        except KeyResolutionError as exc:
            raise SigningError(exc.context) from exc

        logger.debug("Requesting Sigstore signature (staging=%s)", self.staging)
        bundle_json = _sigstore_sign(data, token, staging=self.staging)

        try:
            ctx.check()
        except CancelledError as exc:
            raise SigningCancelledError(exc.context) from exc
        try:
            return json.loads(bundle_json)
        except ValueError as exc:
            raise SigningError(f"Sigstore returned malformed bundle: {exc}") from exc


class SigstoreVerifier(Verifier):
    """Accepts signatures whose Fulcio certificate names *identity* and *issuer*."""

    def __init__(self, identity: str, issuer: str, staging: bool = False):
        self.identity = identity
        self.issuer = issuer
        self.staging = staging

    @classmethod
    def from_reference(cls, ref: str, staging: bool = False) -> "SigstoreVerifier":
        identity, issuer = parse_fulcio_reference(ref)
        return cls(identity, issuer, staging=staging)

    def key_id(self) -> str:
        return self.identity

    def verify(
        self,
        ctx: Context,
        key_id: str,
        data: bytes,
        signature: bytes,
        extension: Optional[Extension] = None,
    ) -> None:
        _require_sigstore()
        ctx.check()
        bundle = bundle_from_signature(
            Signature(sig=b64encode(signature), keyid=key_id, extension=extension)
        )
        _sigstore_verify(data, json.dumps(bundle), self.identity, self.issuer, staging=self.staging)
        ctx.check()
        logger.debug("Sigstore signature verified for %s (%s)", self.identity, self.issuer)
