# tests/test_config.py
from usage_monitor.core.config import load_config


def isolate_env(monkeypatch, *names):
    # setenv first so monkeypatch restores the original absence afterwards
    for name in names:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


ENV_NAMES = (
    "USAGE_MONITOR_DATA_DIR",
    "CLAUDE_CLI_PATH",
    "USAGE_ACQUIRE_TIMEOUT",
    "USAGE_STRATEGIES",
    "USAGE_OAUTH_ENDPOINT",
    "USAGE_RESUME_CHECK_INTERVAL",
    "USAGE_RESUME_THRESHOLD",
    "USAGE_MONITOR_LOG_LEVEL",
)


def test_defaults(tmp_path, monkeypatch):
    isolate_env(monkeypatch, *ENV_NAMES)
    monkeypatch.chdir(tmp_path)
    config = load_config(tmp_path / "data")

    assert config.data_dir.is_dir()
    assert config.settings_path == tmp_path / "data" / "settings.json"
    assert config.acquire_timeout == 60
    assert config.strategies == ["terminal"]
    assert config.claude_path is None
    assert config.log_level == "INFO"


def test_invalid_values_fall_back(tmp_path, monkeypatch):
    isolate_env(monkeypatch, *ENV_NAMES)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("USAGE_ACQUIRE_TIMEOUT", "soon")
    monkeypatch.setenv("USAGE_RESUME_THRESHOLD", "-4")
    monkeypatch.setenv("USAGE_STRATEGIES", "oauth, carrier-pigeon ,terminal,oauth")

    config = load_config(tmp_path)
    assert config.acquire_timeout == 60
    assert config.resume_threshold == 30
    assert config.strategies == ["oauth", "terminal"]


def test_env_file_in_data_dir(tmp_path, monkeypatch):
    isolate_env(monkeypatch, *ENV_NAMES)
    monkeypatch.chdir(tmp_path)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / ".env").write_text("CLAUDE_CLI_PATH=/opt/claude\nUSAGE_ACQUIRE_TIMEOUT=90\n")

    config = load_config(data_dir)
    assert config.claude_path == "/opt/claude"
    assert config.acquire_timeout == 90


def test_real_environment_wins_over_env_file(tmp_path, monkeypatch):
    isolate_env(monkeypatch, *ENV_NAMES)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("USAGE_MONITOR_LOG_LEVEL=debug\n")
    monkeypatch.setenv("USAGE_MONITOR_LOG_LEVEL", "warning")

    assert load_config(tmp_path).log_level == "WARNING"
