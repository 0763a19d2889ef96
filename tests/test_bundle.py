"""Bundle adapter: Sigstore bundle <-> DSSE signature + extension."""

from __future__ import annotations

import base64
import copy
import json

import pytest

from dssekit.bundle import (
    BUNDLE_MEDIA_TYPE,
    EXTENSION_KIND,
    bundle_from_signature,
    signature_from_bundle,
)
from dssekit.dsse import Envelope, Extension, Signature
from dssekit.errors import DecodeError, SigningError, VerificationError


BUNDLE = {
    "mediaType": BUNDLE_MEDIA_TYPE,
    "verificationMaterial": {
        "certificate": {"rawBytes": "MIICyjCCAlCgAwIBAgIU"},
        "tlogEntries": [{
            "logIndex": "25915956",
            "logId": {"keyId": "wNI9atQGlz+VWfO6LRygH4QUfY/8W4RFwiT5i5WRgB0="},
            "kindVersion": {"kind": "hashedrekord", "version": "0.0.1"},
            "integratedTime": "1708296000",
            "inclusionPromise": {"signedEntryTimestamp": "MEUCIQD"},
            "inclusionProof": {
                "logIndex": "21752525",
                "rootHash": "dHJlZQ==",
                "treeSize": "21752527",
                "hashes": ["aGFzaDE=", "aGFzaDI="],
                "checkpoint": {"envelope": "rekor.sigstore.dev - 2605736670972794746\n"},
            },
        }],
    },
    "messageSignature": {
        "messageDigest": {"algorithm": "SHA2_256", "digest": "2h9Cqf0ZhQv0Yp8dV5M="},
        "signature": "MEUCIQCeRD6M8n/6uA==",
    },
}


def test_signature_from_bundle_fields() -> None:
    sig = signature_from_bundle(BUNDLE, key_id="alice@example.com")
    assert sig.keyid == "alice@example.com"
    assert sig.sig
    assert sig.extension is not None
    assert sig.extension.kind == EXTENSION_KIND
    assert sig.extension.ext == BUNDLE["verificationMaterial"]
    stored = json.loads(base64.b64decode(sig.sig))
    assert stored == BUNDLE["messageSignature"]


def test_signature_from_bundle_accepts_json_text() -> None:
    assert signature_from_bundle(json.dumps(BUNDLE)) == signature_from_bundle(BUNDLE)


def test_extension_is_a_copy() -> None:
    bundle = copy.deepcopy(BUNDLE)
    sig = signature_from_bundle(bundle)
    bundle["verificationMaterial"]["certificate"]["rawBytes"] = "changed"
    assert sig.extension.ext["certificate"]["rawBytes"] == "MIICyjCCAlCgAwIBAgIU"


def test_round_trip_through_envelope_json() -> None:
    env = Envelope.new("application/vnd.in-toto+json", b"{}")
    env.add_signature(signature_from_bundle(BUNDLE, key_id="alice@example.com"))
    (restored,) = Envelope.from_json(env.to_json()).signatures
    assert bundle_from_signature(restored) == BUNDLE


@pytest.mark.parametrize("bundle", [
    {"verificationMaterial": BUNDLE["verificationMaterial"]},
    {"messageSignature": BUNDLE["messageSignature"]},
    {"messageSignature": {"signature": ""}, "verificationMaterial": BUNDLE["verificationMaterial"]},
    {"messageSignature": BUNDLE["messageSignature"], "verificationMaterial": {}},
    [1, 2, 3],
    "not json",
])
def test_incomplete_bundles_are_signing_errors(bundle) -> None:
    with pytest.raises(SigningError):
        signature_from_bundle(bundle)


def test_bundle_from_plain_signature_is_rejected() -> None:
    with pytest.raises(VerificationError, match="extension: none"):
        bundle_from_signature(Signature(sig="c2ln", keyid="k"))


def test_bundle_from_foreign_extension_is_rejected() -> None:
    sig = Signature(sig="c2ln", extension=Extension(kind="application/x-other", ext={}))
    with pytest.raises(VerificationError, match="application/x-other"):
        bundle_from_signature(sig)


def test_bundle_from_signature_with_non_json_sig() -> None:
    sig = Signature(sig=base64.b64encode(b"raw bytes").decode(),
                    extension=Extension(kind=EXTENSION_KIND, ext={}))
    with pytest.raises(DecodeError):
        bundle_from_signature(sig)
