import pytest


@pytest.fixture(autouse=True)
def isolated_keys(tmp_path, monkeypatch):
    """Keep every test's master keys and settings out of the real home dir."""
    keys = tmp_path / "keys"
    monkeypatch.setenv("SAFECONFIG_KEY_DIR", str(keys / "user"))
    monkeypatch.setenv("SAFECONFIG_MACHINE_KEY_DIR", str(keys / "machine"))
    monkeypatch.setenv("SAFECONFIG_PROTECTOR", "keyfile")
    monkeypatch.delenv("SAFECONFIG_DIR", raising=False)
    return keys
