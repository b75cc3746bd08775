from __future__ import annotations

import app.database.init_db as init_db_module


def test_sqlite_file_resolves_only_local_files():
    assert init_db_module._sqlite_file("sqlite:///:memory:") is None
    assert init_db_module._sqlite_file("sqlite://") is None
    assert init_db_module._sqlite_file("postgresql+psycopg2://u:p@db:5432/pestflow") is None
    assert init_db_module._sqlite_file("sqlite:///./pestflow.db") == (init_db_module.PROJECT_ROOT / "pestflow.db").resolve()


def test_move_sqlite_file_aside_keeps_a_backup(tmp_path, monkeypatch):
    db_file = tmp_path / "pestflow.db"
    db_file.write_bytes(b"old schema")
    rebound = []
    monkeypatch.setattr(init_db_module.db_module, "reset_engine", lambda url=None: rebound.append(url))
    url = f"sqlite:///{db_file}"

    backup = init_db_module._move_sqlite_file_aside(url)

    assert not db_file.exists()
    assert backup.read_bytes() == b"old schema"
    assert backup.name.startswith("pestflow.backup_")
    assert rebound == [url]


def test_move_sqlite_file_aside_without_existing_file(tmp_path, monkeypatch):
    monkeypatch.setattr(init_db_module.db_module, "reset_engine", lambda url=None: None)

    assert init_db_module._move_sqlite_file_aside(f"sqlite:///{tmp_path / 'missing.db'}") is None
