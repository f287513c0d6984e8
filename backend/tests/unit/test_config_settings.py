"""Unit tests for application settings configuration."""

from pathlib import Path

from docstore.config import Settings


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized


def test_relative_data_paths_resolve_against_backend_dir():
    settings = Settings()
    backend_dir = Path(__file__).resolve().parents[2]

    assert settings.resolve_path("data/rules.yaml") == backend_dir / "data" / "rules.yaml"
    assert settings.resolve_path(str(backend_dir)) == backend_dir
    assert settings.resolve_path("") is None


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("IDENTITY_FIELD", "username")
    monkeypatch.setenv("LOG_LEVEL_RULES", "DEBUG")

    settings = Settings()

    assert settings.identity_field == "username"
    assert settings.log_level_rules == "DEBUG"
