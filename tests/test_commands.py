import json

from certstamp.commands import import_legacy_file, legacy_record


def test_legacy_record_defaults():
    rec = legacy_record({"uid": "abc", "file_url": "/certs/abc.pdf"})
    assert rec["program_name"] == "Legacy Certificate"
    assert rec["orientation"] == "landscape"
    assert rec["category"] == "completion"
    assert rec["verify_url"] == "/verify/abc"
    assert rec["user_id"] is None


def test_import_legacy_file(tmp_path, store):
    path = tmp_path / "certs.json"
    path.write_text(json.dumps([
        {"uid": "a1", "bootcamp": "Data", "type": "participation", "file_url": "/certs/a1.pdf"},
        {"uid": "a1", "bootcamp": "Duplicate"},
        {"bootcamp": "No id"},
    ]))
    imported, failed, backup = import_legacy_file(store, str(path))
    assert (imported, failed) == (1, 2)
    assert not path.exists()
    assert backup.startswith(str(path) + ".backup-")
    assert store.get_certificate("a1")["category"] == "participation"


def test_create_admin_command(app, store):
    result = app.test_cli_runner().invoke(args=["create-admin", "root@example.com", "pass123", "--name", "Root"])
    assert result.exit_code == 0, result.output
    admin = [u for u in store.get_all_users() if u["email"] == "root@example.com"][0]
    assert admin["role"] == "admin"
    assert admin["status"] == "approved"


def test_check_db_command(app):
    result = app.test_cli_runner().invoke(args=["check-db"])
    assert result.exit_code == 0
    assert "successful" in result.output
