"""
errors.py — dssekit Error Taxonomy

Every failure raised by the envelope core carries a stable code, a short
message, and optional context. Nothing here is recovered internally: each
error aborts the current operation and is surfaced to the caller as-is.
"""

from typing import List, Optional, Sequence

__all__ = [
    "DsseError",
    "DecodeError",
    "ConfigError",
    "SigningError",
    "SigningCancelledError",
    "KeyResolutionError",
    "VerificationError",
    "SerializationError",
    "CancelledError",
]


class DsseError(Exception):
    """Base class for all dssekit errors."""
    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"

        super().__init__(full_msg)


# Decoding (E1xx)
class DecodeError(DsseError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("DSSE_E100", "Malformed JSON or base64 in envelope or payload.", context)


# Configuration (E2xx)
class ConfigError(DsseError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("DSSE_E200", "Incompatible or missing configuration.", context)


# Signing (E3xx)
class SigningError(DsseError):
    def __init__(self, context: Optional[str] = None, code: str = "DSSE_E300",
                 message: str = "Signer failed to produce a signature."):
        super().__init__(code, message, context)


class SigningCancelledError(SigningError):
    def __init__(self, context: Optional[str] = None):
        super().__init__(context, "DSSE_E301", "Signing was cancelled or its deadline expired.")


# Keys (E4xx)
class KeyResolutionError(DsseError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("DSSE_E400", "Signing or verification key could not be resolved.", context)


# Verification (E5xx)
class VerificationError(DsseError):
    """Signature rejected, or threshold not met.

    When raised by the threshold verifier, ``needed``/``obtained`` give the
    counts, ``accepted`` the key IDs that did verify, and ``attempts`` a
    ``(signature_keyid, verifier_keyid, outcome)`` triple per attempt.
    """
    def __init__(
        self,
        context: Optional[str] = None,
        needed: Optional[int] = None,
        obtained: Optional[int] = None,
        accepted: Optional[Sequence[str]] = None,
        attempts: Optional[List[tuple]] = None,
    ):
        self.needed = needed
        self.obtained = obtained
        self.accepted = list(accepted or [])
        self.attempts = list(attempts or [])
        super().__init__("DSSE_E500", "Envelope signature verification failed.", context)


# Serialization (E6xx)
class SerializationError(DsseError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("DSSE_E600", "Envelope could not be serialized.", context)


# Context (E7xx)
class CancelledError(DsseError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("DSSE_E700", "Operation cancelled or deadline exceeded.", context)
