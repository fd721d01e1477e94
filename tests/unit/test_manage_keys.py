"""Unit tests for the manage_keys CLI, run against mongomock."""

import re

import pytest

from manage_keys import main
from repositories.api_key_repository import API_KEYS_COLLECTION
from shared.crypto import hash_api_key
from shared.permissions import Permission


def _raw_key(output: str) -> str:
    return re.search(r"img_[0-9a-f]{64}", output).group(0)


def test_create_default_permissions(mock_db, capsys):
    assert main(["create", "gallery"], db=mock_db) == 0
    out = capsys.readouterr().out
    assert 'API key created for "gallery" (id 1000)' in out
    assert "Permissions: READ, WRITE" in out

    stored = mock_db[API_KEYS_COLLECTION].find_one({"app_name": "gallery"})
    assert stored["key_hash"] == hash_api_key(_raw_key(out))
    assert stored["permissions"] == int(Permission.READ | Permission.WRITE)


def test_create_with_permissions(mock_db, capsys):
    assert main(["create", "ops", "read", "delete", "admin"], db=mock_db) == 0
    stored = mock_db[API_KEYS_COLLECTION].find_one({"app_name": "ops"})
    assert stored["permissions"] == int(
        Permission.READ | Permission.DELETE | Permission.ADMIN
    )


def test_create_unknown_permission(mock_db, capsys):
    assert main(["create", "gallery", "superuser"], db=mock_db) == 1
    err = capsys.readouterr().err
    assert "Error: Unknown permission: superuser" in err
    assert "Valid permissions: admin, delete, read, write" in err
    assert mock_db[API_KEYS_COLLECTION].count_documents({}) == 0


def test_create_duplicate_active_key(mock_db, capsys):
    main(["create", "gallery"], db=mock_db)
    assert main(["create", "gallery"], db=mock_db) == 1
    assert "already exists" in capsys.readouterr().err


def test_list_empty(mock_db, capsys):
    assert main(["list"], db=mock_db) == 0
    assert "No API keys found." in capsys.readouterr().out


def test_list_never_shows_raw_key(mock_db, capsys):
    main(["create", "gallery"], db=mock_db)
    raw = _raw_key(capsys.readouterr().out)

    assert main(["list"], db=mock_db) == 0
    out = capsys.readouterr().out
    assert "Found 1 API key(s)" in out
    assert "[1000] gallery" in out
    assert f"Prefix: {raw[:12]}..." in out
    assert raw not in out


def test_update(mock_db, capsys):
    main(["create", "gallery"], db=mock_db)
    assert main(["update", "1000", "read"], db=mock_db) == 0
    assert "API key 1000 updated. New permissions: READ" in capsys.readouterr().out
    stored = mock_db[API_KEYS_COLLECTION].find_one({"api_key_id": 1000})
    assert stored["permissions"] == int(Permission.READ)


def test_revoke(mock_db, capsys):
    main(["create", "gallery"], db=mock_db)
    assert main(["revoke", "1000"], db=mock_db) == 0
    assert "API key 1000 has been revoked." in capsys.readouterr().out
    assert mock_db[API_KEYS_COLLECTION].find_one({"api_key_id": 1000})["active"] is False


@pytest.mark.parametrize("command", ["update", "revoke"])
def test_unknown_id(mock_db, capsys, command):
    argv = [command, "4242"] + (["read"] if command == "update" else [])
    assert main(argv, db=mock_db) == 1
    assert "Error: API key 4242 not found." in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv", [[], ["bogus"], ["revoke"], ["revoke", "abc"], ["update", "1000"]]
)
def test_usage_errors_exit_1(mock_db, argv):
    assert main(argv, db=mock_db) == 1


def test_help_exits_0(mock_db):
    assert main(["--help"], db=mock_db) == 0
