from unittest.mock import patch

from hostca.cli import main
from hostca.db.models import CertType
from hostca.utils.sshkeys import marshal_authorized_key


def test_known_hosts(storage, make_host_key, capsys):
    public_key, _ = make_host_key()
    storage.record_issuance(CertType.host, "db1.example.com", public_key)

    with patch("hostca.cli.get_storage", return_value=storage):
        assert main(["known-hosts"]) == 0

    assert capsys.readouterr().out == f"db1.example.com {marshal_authorized_key(public_key)}\n"


def test_mapping_lookup(storage, capsys):
    storage.record_identity_mapping({"alice@example.com": "alice"})

    with patch("hostca.cli.get_storage", return_value=storage):
        assert main(["mapping", "alice@example.com"]) == 0
        assert main(["mapping", "bob@example.com"]) == 1

    captured = capsys.readouterr()
    assert captured.out == "alice\n"
    assert "bob@example.com" in captured.err


def test_migrate(engine, capsys):
    from hostca.db.storage import SqliteStorage

    with patch("hostca.cli.get_storage", return_value=SqliteStorage(engine)):
        assert main(["migrate"]) == 0

    assert "up to date" in capsys.readouterr().out


def test_no_command(capsys):
    assert main([]) == 1
