"""
signerverifier.py — Signer and Verifier capabilities.

A Signer is one of two variants:

  LocalKeySigner  sign() returns raw signature bytes.
  BundleSigner    sign() returns a structured signing response (a parsed
                  Sigstore bundle document) that must go through the bundle
                  adapter before it can be stored in an envelope.

Callers choose the handling by variant, never by looking at the output.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from .context import Context
from .dsse import Extension


class LocalKeySigner(ABC):
    """Signs with key material held by this process."""

    @abstractmethod
    def sign(self, ctx: Context, data: bytes) -> bytes:
        """Return the raw signature over *data*.

        Raises:
            SigningError: on any failure.
            SigningCancelledError: if *ctx* is cancelled or expired.
        """

    @abstractmethod
    def key_id(self) -> str:
        """Raises KeyResolutionError if the key ID cannot be determined."""


class BundleSigner(ABC):
    """Signs through a service that returns the signature with verification material."""

    @abstractmethod
    def sign(self, ctx: Context, data: bytes) -> Dict[str, Any]:
        """Return the signing response as a JSON object."""

    @abstractmethod
    def key_id(self) -> str:
        """Raises KeyResolutionError if the key ID cannot be determined."""


Signer = Union[LocalKeySigner, BundleSigner]


class Verifier(ABC):

    @abstractmethod
    def verify(
        self,
        ctx: Context,
        key_id: str,
        data: bytes,
        signature: bytes,
        extension: Optional[Extension] = None,
    ) -> None:
        """Accept *signature* over *data* or raise VerificationError.

        *key_id* is the key ID the signature declares (may be empty).
        *extension* is the verification material stored next to the
        signature, if any; plain key verifiers ignore it.
        """

    @abstractmethod
    def key_id(self) -> str:
        """Key ID used to pre-filter signatures that declare one."""
