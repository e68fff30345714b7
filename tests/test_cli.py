import json

import pytest

from ssv_keys import cli
from ssv_keys.exceptions import InvalidOperatorIdError
from ssv_keys.key_shares import KeyShares
from tests.helpers import OWNER_ADDRESS, PASSWORD, PRIVATE_KEY, make_keystore


@pytest.fixture
def keystore_dir(tmp_path):
    folder = tmp_path / "validator_keys"
    folder.mkdir()
    (folder / "keystore-m_12381_3600_0_0_0.json").write_bytes(make_keystore())
    (folder / "keystore-m_12381_3600_1_0_0.json").write_bytes(make_keystore(secret=PRIVATE_KEY + 1))
    (folder / "deposit_data.json").write_text("[]")
    (folder / "pw.txt").write_text(PASSWORD + "\n")
    return folder


def _operator_args(operators):
    return [
        "--operator-ids", ",".join(str(o.id) for o in operators),
        "--operator-keys", ",".join(o.public_key for o in operators),
    ]


def _shares(keystore_dir, operators, tmp_path, *extra):
    out = tmp_path / "out"
    out.mkdir()
    argv = ["shares", "--keystore", str(keystore_dir), "--output-folder", str(out)]
    assert cli.main(argv + _operator_args(operators) + list(extra)) == 0
    (path,) = out.glob("keyshares-*.json")
    return path


def test_shares(keystore_dir, operators, tmp_path, capsys):
    path = _shares(keystore_dir, operators, tmp_path,
                   "--owner-address", OWNER_ADDRESS, "--owner-nonce", "3")
    key_shares = KeyShares.deserialize(path.read_bytes())
    assert len(key_shares) == 2
    assert [item.owner_nonce for item in key_shares] == [3, 4]
    assert [item.payload.readable.owner_nonce for item in key_shares] == [3, 4]

    out = capsys.readouterr().out
    assert "2 of 2 keystore files successfully validated" in out
    assert str(path) in out


def test_shares_v2_without_payload(keystore_dir, operators, tmp_path):
    path = _shares(keystore_dir, operators, tmp_path, "--version", "v2")
    doc = json.loads(path.read_bytes())
    assert doc["version"] == "v2"
    assert all(s["payload"] is None for s in doc["shares"])


def test_shares_password_option(keystore_dir, operators, tmp_path):
    (keystore_dir / "pw.txt").unlink()
    keystore = keystore_dir / "keystore-m_12381_3600_0_0_0.json"
    out = tmp_path / "out"
    out.mkdir()
    argv = ["shares", "--keystore", str(keystore), "--password", PASSWORD, "--output-folder", str(out)]
    assert cli.main(argv + _operator_args(operators)) == 0
    assert len(list(out.glob("keyshares-*.json"))) == 1


def test_shares_wrong_password(keystore_dir, operators, tmp_path, capsys):
    argv = ["shares", "--keystore", str(keystore_dir), "--password", "wrong", "--output-folder", str(tmp_path)]
    assert cli.main(argv + _operator_args(operators)) == 1
    captured = capsys.readouterr()
    assert "0 of 2 keystore files successfully validated" in captured.out
    assert captured.err.startswith("Error: Unable to locate valid keystore files")


def test_shares_operator_mismatch(keystore_dir, operators, tmp_path, capsys):
    argv = ["shares", "--keystore", str(keystore_dir), "--output-folder", str(tmp_path),
            "--operator-ids", "1,2,3", "--operator-keys", ",".join(o.public_key for o in operators)]
    assert cli.main(argv) == 1
    assert "Mismatch amount of operator ids" in capsys.readouterr().err


def test_missing_keystore(operators, tmp_path, capsys):
    argv = ["shares", "--keystore", str(tmp_path / "nope.json"), "--password", PASSWORD]
    assert cli.main(argv + _operator_args(operators)) == 1
    assert capsys.readouterr().err.startswith("Error: ")


def test_parse_operators():
    assert cli.parse_operators("1, 2", "a,b ") == [{"id": 1, "publicKey": "a"}, {"id": 2, "publicKey": "b"}]
    with pytest.raises(InvalidOperatorIdError):
        cli.parse_operators("1,x", "a,b")


def test_keystore_files(keystore_dir):
    names = [p.name for p in cli.keystore_files(keystore_dir)]
    assert names == ["keystore-m_12381_3600_0_0_0.json", "keystore-m_12381_3600_1_0_0.json"]


def test_transaction(keystore_dir, operators, tmp_path, capsys):
    path = _shares(keystore_dir, operators, tmp_path, "--owner-address", OWNER_ADDRESS, "--owner-nonce", "0")
    capsys.readouterr()
    output = tmp_path / "rebuilt.json"
    argv = ["transaction", "--shares", str(path), "--owner-nonce", "10",
            "--token-amount", "123456789", "--output", str(output)]
    assert cli.main(argv) == 0

    key_shares = KeyShares.deserialize(output.read_bytes())
    assert [item.payload.readable.owner_nonce for item in key_shares] == [10, 11]
    assert [item.payload.readable.token_amount for item in key_shares] == [123456789, 123456789]

    out = capsys.readouterr().out
    assert "Transaction payload #1 explained:" in out
    for item in key_shares:
        assert item.payload.raw in out
    # the input file is left alone when an output is given
    assert KeyShares.deserialize(path.read_bytes()).items[0].payload.readable.owner_nonce == 0


def test_transaction_without_owner(keystore_dir, operators, tmp_path, capsys):
    path = _shares(keystore_dir, operators, tmp_path, "--version", "v2")
    assert cli.main(["transaction", "--shares", str(path)]) == 1
    assert "shares[0]: context:" in capsys.readouterr().err

    assert cli.main(["transaction", "--shares", str(path), "--token-amount", "1"]) == 0
    assert KeyShares.deserialize(path.read_bytes()).items[1].payload.readable.token_amount == 1
