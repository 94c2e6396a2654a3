# tests/test_settings.py
import json
from pathlib import Path

from usage_monitor.settings import SettingsStore


def make_store(tmp_path):
    return SettingsStore(tmp_path / "data" / "settings.json", home=tmp_path)


def test_missing_file_gives_defaults(tmp_path):
    settings = make_store(tmp_path).load()
    assert settings.refresh_interval == 180
    assert settings.accounts == []


def test_corrupt_file_gives_defaults(tmp_path):
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json")
    assert store.load().accounts == []


def test_create_fresh_account(tmp_path):
    store = make_store(tmp_path)
    account = store.create_account("Work")

    assert account.name == "Work"
    assert account.is_active
    assert Path(account.config_dir) == tmp_path / f".claude-{account.id[:8]}"
    assert Path(account.config_dir).is_dir()

    on_disk = json.loads(store.path.read_text())
    assert on_disk["accounts"][0]["id"] == account.id
    assert store.load().get_account(account.id).config_dir == account.config_dir


def test_create_existing_account_uses_default_dir(tmp_path):
    account = make_store(tmp_path).create_account("Personal", use_existing=True)
    assert Path(account.config_dir) == tmp_path / ".claude"


def test_account_mutations(tmp_path):
    store = make_store(tmp_path)
    a = store.create_account("A")
    b = store.create_account("B")

    assert store.rename_account(a.id, "  Alpha ")
    assert store.set_account_active(b.id, False)
    settings = store.load()
    assert [x.name for x in settings.accounts] == ["Alpha", "B"]
    assert [x.id for x in settings.active_accounts] == [a.id]

    assert store.remove_account(a.id)
    assert not store.remove_account(a.id)
    assert [x.id for x in store.load().accounts] == [b.id]
    assert not store.rename_account("nope", "x")


def test_refresh_interval_is_clamped(tmp_path):
    store = make_store(tmp_path)
    assert store.set_refresh_interval(5) == 30
    assert store.set_refresh_interval(300) == 300
    assert store.load().refresh_interval == 300
