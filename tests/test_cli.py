"""End-to-end tests for the dssekit command line."""

import base64
import json
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from dssekit.cli import _cli_error, _fail_with_error, main
from dssekit.errors import ConfigError, DsseError
from dssekit.keys import KeySignerVerifier


def _write_keypair(directory: Path, name: str, key_type: str = "ed25519"):
    kp = KeySignerVerifier.generate(key_type)
    priv = directory / name
    priv.write_bytes(kp.private_key.private_bytes(Encoding.PEM, PrivateFormat.OpenSSH, NoEncryption()))
    pub = directory / f"{name}.pub"
    pub.write_bytes(kp.public_key.public_bytes(Encoding.OpenSSH, PublicFormat.OpenSSH))
    return kp, priv, pub


@pytest.fixture()
def workspace(tmp_path):
    payload = tmp_path / "statement.json"
    payload.write_text('{"subject": "cli_test", "value": 42}', encoding="utf-8")
    alice = _write_keypair(tmp_path, "alice")
    bob = _write_keypair(tmp_path, "bob", "ecdsa")
    return tmp_path, payload, alice, bob


def test_fail_with_error(capsys):
    err = DsseError(code="TEST_ERR", message="Test message.", context="test context")
    with pytest.raises(SystemExit) as e:
        _fail_with_error(err)
    assert e.value.code == 1
    assert "ERROR: TEST_ERR. Test message. Context: test context." in capsys.readouterr().err


def test_cli_error(capsys):
    with pytest.raises(SystemExit) as e:
        _cli_error("What", "Why", "Fix")
    assert e.value.code == 1
    assert "ERROR: What. Why. Fix: Fix." in capsys.readouterr().err


def test_sign_verify_cat_lifecycle(workspace, capsys):
    tmp, payload, (alice, alice_key, alice_pub), (bob, bob_key, bob_pub) = workspace
    envelope = Path(f"{payload}.dsse")

    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json"])
    assert envelope.exists()

    main(["sign", str(envelope), "-k", str(bob_key)])
    doc = json.loads(envelope.read_text())
    assert [s["keyid"] for s in doc["signatures"]] == [alice.key_id(), bob.key_id()]

    capsys.readouterr()
    main(["verify", str(envelope), "-k", str(alice_pub), "-k", str(bob_pub), "--threshold", "2"])
    out = capsys.readouterr().out
    assert f"Verified {envelope}: 2 of 2" in out
    assert alice.key_id() in out and bob.key_id() in out

    main(["cat", str(envelope)])
    out = capsys.readouterr().out
    assert f"Summary for {envelope}:" in out
    assert "\tPayload Type: application/json" in out
    assert "\tSignatures without key IDs: 0" in out
    assert f"\t\t{bob.key_id()}" in out

    main(["cat", "--payload-type", str(envelope)])
    assert capsys.readouterr().out == "application/json\n"

    main(["cat", "-p", str(envelope)])
    assert capsys.readouterr().out.strip() == doc["payload"]


def test_cat_decode_base64(workspace, capsysbinary):
    tmp, payload, (_, alice_key, _), _ = workspace
    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json"])
    capsysbinary.readouterr()
    main(["cat", "-p", "-d", f"{payload}.dsse"])
    assert capsysbinary.readouterr().out == payload.read_bytes() + b"\n"


def test_cat_decode_requires_payload(workspace, capsys):
    tmp, payload, (_, alice_key, _), _ = workspace
    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json"])
    with pytest.raises(SystemExit) as e:
        main(["cat", "-d", f"{payload}.dsse"])
    assert e.value.code == 1
    assert "--decode-base64 only applies to --payload" in capsys.readouterr().err


def test_sign_with_output_and_canonicalization(workspace):
    tmp, payload, (_, alice_key, _), _ = workspace
    out = tmp / "custom.dsse"
    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json",
          "-o", str(out), "--canonicalize-json"])
    doc = json.loads(out.read_text())
    assert base64.b64decode(doc["payload"]) == b'{"subject":"cli_test","value":42}'


def test_sign_new_without_payload_type(workspace, capsys):
    tmp, payload, (_, alice_key, _), _ = workspace
    with pytest.raises(SystemExit) as e:
        main(["sign", str(payload), "-k", str(alice_key)])
    assert e.value.code == 1
    assert ConfigError().code in capsys.readouterr().err
    assert not Path(f"{payload}.dsse").exists()


def test_sign_existing_envelope_with_payload_type(workspace, capsys):
    tmp, payload, (_, alice_key, _), (_, bob_key, _) = workspace
    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json"])
    envelope = Path(f"{payload}.dsse")
    before = envelope.read_bytes()
    with pytest.raises(SystemExit):
        main(["sign", str(envelope), "-k", str(bob_key), "-t", "text/plain"])
    assert "existing DSSE envelope" in capsys.readouterr().err
    assert envelope.read_bytes() == before


def test_sign_requires_a_signer(workspace):
    tmp, payload, _, _ = workspace
    with pytest.raises(SystemExit) as e:
        main(["sign", str(payload), "-t", "text/plain"])
    assert e.value.code == 2


def test_verify_threshold_not_met(workspace, capsys):
    tmp, payload, (_, alice_key, alice_pub), (_, _, bob_pub) = workspace
    main(["sign", str(payload), "-k", str(alice_key), "-t", "application/json"])
    with pytest.raises(SystemExit) as e:
        main(["verify", f"{payload}.dsse", "-k", str(alice_pub), "-k", str(bob_pub), "--threshold", "2"])
    assert e.value.code == 1
    assert "1 of 2" in capsys.readouterr().err


def test_verify_bad_threshold(workspace, capsys):
    tmp, payload, _, (_, _, bob_pub) = workspace
    with pytest.raises(SystemExit):
        main(["verify", "does-not-exist.dsse", "-k", str(bob_pub), "--threshold", "0"])
    assert "threshold must be positive" in capsys.readouterr().err


def test_verify_bad_fulcio_reference(workspace, capsys):
    tmp, payload, _, _ = workspace
    with pytest.raises(SystemExit):
        main(["verify", "x.dsse", "-k", "fulcio:missing-issuer"])
    assert "invalid fulcio format" in capsys.readouterr().err


def test_verify_missing_envelope(workspace, capsys):
    tmp, payload, _, (_, _, bob_pub) = workspace
    with pytest.raises(SystemExit) as e:
        main(["verify", str(tmp / "missing.dsse"), "-k", str(bob_pub)])
    assert e.value.code == 1
    assert "File access failed" in capsys.readouterr().err


def test_cat_malformed_envelope(tmp_path, capsys):
    bad = tmp_path / "bad.dsse"
    bad.write_text("{not json")
    with pytest.raises(SystemExit):
        main(["cat", str(bad)])
    assert "DSSE_E100" in capsys.readouterr().err
