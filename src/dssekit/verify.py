"""
verify.py — Threshold verification of DSSE envelopes

An envelope is accepted when at least ``threshold`` distinct verifiers are
each satisfied by a signature in the envelope.

Counting rules:
  - A verifier counts once, on its first successful signature.
  - A signature is credited to at most one verifier; once it verifies, the
    remaining verifiers are not tried against it.
  - A signature that declares a keyid is only tried against verifiers with
    that key ID. A signature with no keyid is tried against all of them.

Signatures and verifiers are walked in order, so the accepted key IDs are
reported in order of first success and are the same on every run.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .context import Context
from .dsse import Envelope, Signature, b64decode
from .errors import ConfigError, VerificationError
from .signerverifier import Verifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptedKey:
    key_id: str
    signature: Signature


class EnvelopeVerifier:
    """Verifies envelopes against a fixed verifier set and threshold.

    Raises:
        ConfigError: at construction, if the verifier list is empty or the
                     threshold is not in ``1..len(verifiers)``.
    """

    def __init__(self, verifiers: Sequence[Verifier], threshold: int = 1):
        if not verifiers:
            raise ConfigError("at least one verifier is required")
        if threshold <= 0:
            raise ConfigError(f"threshold must be positive, got {threshold}")
        if threshold > len(verifiers):
            raise ConfigError(
                f"threshold {threshold} exceeds the number of verifiers ({len(verifiers)})"
            )
        self.verifiers = list(verifiers)
        self.threshold = threshold
        self._key_ids = [v.key_id() for v in self.verifiers]

    def verify(self, ctx: Context, envelope: Envelope) -> List[AcceptedKey]:
        """Return the accepted keys, or raise VerificationError.

        Raises:
            DecodeError:       if the payload or a signature is not base64.
            VerificationError: if fewer than ``threshold`` verifiers are
                               satisfied.
        """
        signatures = envelope.signatures
        if not signatures:
            raise VerificationError("envelope has no signatures", needed=self.threshold, obtained=0)

        signable = envelope.pae()

        accepted: List[AcceptedKey] = []
        satisfied = set()
        attempts: List[Tuple[str, str, str]] = []

        for sig in signatures:
            sig_bytes = b64decode(sig.sig, "signature")
            for index, verifier in enumerate(self.verifiers):
                verifier_kid = self._key_ids[index]
                if sig.keyid and sig.keyid != verifier_kid:
                    continue
                if index in satisfied:
                    continue
                try:
                    verifier.verify(ctx, sig.keyid, signable, sig_bytes, extension=sig.extension)
                except VerificationError as exc:
                    attempts.append((sig.keyid, verifier_kid, "rejected"))
                    logger.debug("Signature %r rejected by %s: %s", sig.keyid, verifier_kid, exc)
                    continue
                attempts.append((sig.keyid, verifier_kid, "accepted"))
                logger.debug("Signature %r accepted by %s", sig.keyid, verifier_kid)
                satisfied.add(index)
                accepted.append(AcceptedKey(key_id=verifier_kid, signature=sig))
                break

        if len(accepted) < self.threshold:
            accepted_ids = [a.key_id for a in accepted]
            tried = ", ".join(f"{s or '<no keyid>'}->{v}: {o}" for s, v, o in attempts) or "none"
            raise VerificationError(
                f"accepted signatures do not meet threshold: {len(accepted)} of {self.threshold}"
                f" (attempted: {tried})",
                needed=self.threshold,
                obtained=len(accepted),
                accepted=accepted_ids,
                attempts=attempts,
            )
        return accepted


def verify_envelope(
    ctx: Context,
    envelope: Envelope,
    verifiers: Sequence[Verifier],
    threshold: int = 1,
) -> List[str]:
    """Verify *envelope* and return the key IDs of the satisfied verifiers."""
    return [a.key_id for a in EnvelopeVerifier(verifiers, threshold).verify(ctx, envelope)]
