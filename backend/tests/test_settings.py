"""
Tests for AutomatorSettings.
"""

from utils.settings import AutomatorSettings

ENV_NAMES = [
    "TT_AUTOMATOR_WEBHOOK_URL",
    "TT_AUTOMATOR_HEADLESS",
    "SUCCESS_TIMEOUT_S",
    "PORT",
]


def clear_env(monkeypatch):
    # setenv first so the variables are restored to "unset" afterwards
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class TestAutomatorSettings:
    """Tests for loading settings from the environment."""

    def test_defaults(self, monkeypatch, tmp_path):
        clear_env(monkeypatch)

        settings = AutomatorSettings.from_env(str(tmp_path / "missing.env"))

        assert settings.webhook_url == "http://localhost:5678/webhook/tiktok-post-success"
        assert settings.headless is False
        assert settings.element_timeout_s == 10.0
        assert settings.success_poll_interval_s == 2.0
        assert settings.success_timeout_s == 60.0
        assert settings.aux_window_width == 450

    def test_environment_overrides(self, monkeypatch, tmp_path):
        clear_env(monkeypatch)
        monkeypatch.setenv("TT_AUTOMATOR_WEBHOOK_URL", "https://hooks.example.com/done")
        monkeypatch.setenv("TT_AUTOMATOR_HEADLESS", "true")
        monkeypatch.setenv("SUCCESS_TIMEOUT_S", "90")
        monkeypatch.setenv("PORT", "9000")

        settings = AutomatorSettings.from_env(str(tmp_path / "missing.env"))

        assert settings.webhook_url == "https://hooks.example.com/done"
        assert settings.headless is True
        assert settings.success_timeout_s == 90.0
        assert settings.port == 9000

    def test_env_file(self, monkeypatch, tmp_path):
        clear_env(monkeypatch)
        env_file = tmp_path / ".env"
        env_file.write_text("TT_AUTOMATOR_WEBHOOK_URL=https://hooks.example.com/from-file\n")

        settings = AutomatorSettings.from_env(str(env_file))

        assert settings.webhook_url == "https://hooks.example.com/from-file"
