from pathlib import Path
from typing import Generator

import pytest
from typer.testing import CliRunner

from txledger.cli.main import app
from txledger.chaincode.contract import TransactionContract
from txledger.storage import SQLiteStorage

runner = CliRunner()

SEED_KEY = "5f25ee06fb80627997c99db48f9f4df703874da5abfa327367fc1f558811e6fc"


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Path, None, None]:
    """Temporary DB file + auto-cleanup."""
    db_path = tmp_path / "test-cli.db"
    yield db_path
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def populated_db(temp_db: Path) -> Path:
    """DB with the seed transaction plus two created ones."""
    with TransactionContract(storage=str(temp_db)) as contract:
        contract.init_ledger()
        contract.create_tx("alpha-binding", 1700000000)
        contract.create_tx("beta-binding", 1700000001)
    return temp_db


def test_read_no_db(tmp_path: Path):
    result = runner.invoke(app, ["read", SEED_KEY, "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "not found" in result.stdout.lower()
    assert "to get started" in result.stdout.lower()


def test_init_creates_db(temp_db: Path):
    result = runner.invoke(app, ["init", "--db", str(temp_db)])
    assert result.exit_code == 0
    assert SEED_KEY in result.stdout
    assert temp_db.exists()


def test_create_then_read(temp_db: Path):
    result = runner.invoke(app, ["create", "cli-binding", "42", "--db", str(temp_db)])
    assert result.exit_code == 0
    assert "Created" in result.stdout

    with SQLiteStorage(temp_db) as storage:
        with storage.range_scan("", "") as results:
            keys = [k for k, _ in results]
    assert len(keys) == 1

    result = runner.invoke(app, ["read", keys[0], "--db", str(temp_db)])
    assert result.exit_code == 0
    assert "cli-binding" in result.stdout
    assert "42" in result.stdout


def test_create_duplicate_fails(populated_db: Path):
    result = runner.invoke(app, ["create", "test_binding", "0", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "already" in result.stdout.lower()


def test_create_out_of_range_timestamp(temp_db: Path):
    result = runner.invoke(app, ["create", "b", str(2 ** 63), "--db", str(temp_db)])
    assert result.exit_code == 1
    assert "invalid" in result.stdout.lower()


def test_read_missing_key(populated_db: Path):
    result = runner.invoke(app, ["read", "0" * 64, "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "exist" in result.stdout.lower()


def test_exists_exit_codes(populated_db: Path):
    present = runner.invoke(app, ["exists", SEED_KEY, "--db", str(populated_db)])
    assert present.exit_code == 0
    assert "true" in present.stdout

    absent = runner.invoke(app, ["exists", "0" * 64, "--db", str(populated_db)])
    assert absent.exit_code == 1
    assert "false" in absent.stdout


def test_delete(populated_db: Path):
    result = runner.invoke(app, ["delete", SEED_KEY, "--db", str(populated_db)])
    assert result.exit_code == 0
    assert "Deleted" in result.stdout

    again = runner.invoke(app, ["delete", SEED_KEY, "--db", str(populated_db)])
    assert again.exit_code == 1
    assert "exist" in again.stdout.lower()


def test_list_shows_all(populated_db: Path):
    result = runner.invoke(app, ["list", "--db", str(populated_db)])
    assert result.exit_code == 0
    assert "Transactions (3)" in result.stdout
    assert "alpha-binding" in result.stdout
    assert "beta-binding" in result.stdout
    assert SEED_KEY in result.stdout


def test_list_empty_namespace(populated_db: Path):
    result = runner.invoke(app, ["list", "--db", str(populated_db), "--namespace", "other"])
    assert result.exit_code == 0
    assert "no transactions" in result.stdout.lower()


def test_list_aborts_on_corruption(populated_db: Path):
    with SQLiteStorage(populated_db) as storage:
        storage.put("7" * 64, b"garbage")

    result = runner.invoke(app, ["list", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "aborted" in result.stdout.lower()


def test_global_options_and_env(populated_db: Path, monkeypatch):
    result = runner.invoke(app, ["--db", str(populated_db), "exists", SEED_KEY])
    assert result.exit_code == 0

    monkeypatch.setenv("TXLEDGER_DB_PATH", str(populated_db))
    result = runner.invoke(app, ["exists", SEED_KEY])
    assert result.exit_code == 0

    monkeypatch.setenv("TXLEDGER_NAMESPACE", "elsewhere")
    result = runner.invoke(app, ["exists", SEED_KEY])
    assert result.exit_code == 1


def test_namespaces(populated_db: Path):
    with TransactionContract(storage=str(populated_db), namespace="audit") as contract:
        contract.create_tx("audit-only", 1)

    result = runner.invoke(app, ["namespaces", "--db", str(populated_db)])
    assert result.exit_code == 0
    assert "audit" in result.stdout
    assert "txledger" in result.stdout


def test_key_is_offline(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TXLEDGER_DB_PATH", str(tmp_path / "never-created.db"))
    result = runner.invoke(app, ["key", "test_binding", "0", "--show-bytes"])
    assert result.exit_code == 0
    assert '{"Binding":"test_binding","Timestamp":0}' in result.stdout
    assert SEED_KEY in result.stdout
    assert not (tmp_path / "never-created.db").exists()


def test_verify_valid(populated_db: Path):
    result = runner.invoke(app, ["verify", "--db", str(populated_db)])
    assert result.exit_code == 0
    assert "valid" in result.stdout.lower()


def test_verify_detects_tampering(populated_db: Path):
    with SQLiteStorage(populated_db) as storage:
        storage.put(SEED_KEY, b'{"Binding":"tampered","Timestamp":0}')

    result = runner.invoke(app, ["verify", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "key_mismatch" in result.stdout


def test_create_rejects_unencodable_binding(temp_db: Path):
    result = runner.invoke(app, ["create", "\ud800", "1", "--db", str(temp_db)])
    assert result.exit_code == 1
    assert "invalid" in result.stdout.lower()


def test_create_large_timestamp_roundtrips(temp_db: Path):
    result = runner.invoke(app, ["create", "nanos", str(2 ** 63 - 1), "--db", str(temp_db)])
    assert result.exit_code == 0

    result = runner.invoke(app, ["list", "--db", str(temp_db)])
    assert result.exit_code == 0
    assert "9223372036854775807" in result.stdout


def test_exists_empty_key(populated_db: Path):
    result = runner.invoke(app, ["exists", "", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "false" in result.stdout


def test_read_key_with_markup_characters(populated_db: Path):
    result = runner.invoke(app, ["read", "[bold]x[/bold]", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "[bold]x[/bold]" in result.stdout
