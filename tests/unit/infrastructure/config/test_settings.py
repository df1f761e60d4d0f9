import pytest

from workdocs.domain.errors import ConfigurationError
from workdocs.infrastructure.config import settings


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """Lets load_configuration run again against temporary files."""
    monkeypatch.setattr(settings, "_loaded", False)
    monkeypatch.setattr(settings, "_config", {})
    return tmp_path


def test_get_config_default():
    assert settings.get_config("no_such_key", "fallback") == "fallback"


def test_test_config_overrides_environment(monkeypatch):
    monkeypatch.setenv("INPUT_DIR", "from-env")
    assert settings.get_config("input_dir") == "from-env"

    settings.set_config_for_testing({"input_dir": "from-test"})
    assert settings.get_config("input_dir") == "from-test"


@pytest.mark.parametrize("raw, expected", [("true", True), ("False", False), ("7", 7), ("2.5", 2.5), ("abc", "abc")])
def test_environment_values_are_coerced(monkeypatch, raw, expected):
    monkeypatch.setenv("SOME_SETTING", raw)
    assert settings.get_config("some_setting") == expected


def test_yaml_then_dotenv_then_environment(fresh_config, monkeypatch):
    config_file = fresh_config / "config.yaml"
    config_file.write_text(
        "input_dir: yaml-input\nprocessed_dir: yaml-processed\nfailed_dir: yaml-failed\n"
        "worker_cache:\n  ttl_seconds: 120\n",
        encoding="utf-8",
    )
    env_file = fresh_config / ".env"
    env_file.write_text("PROCESSED_DIR=dotenv-processed\nFAILED_DIR=dotenv-failed\n", encoding="utf-8")
    monkeypatch.setenv("FAILED_DIR", "env-failed")
    # Registers PROCESSED_DIR with monkeypatch so the value loaded from .env is removed afterwards
    monkeypatch.setenv("PROCESSED_DIR", "placeholder")
    monkeypatch.delenv("PROCESSED_DIR")

    settings.load_configuration(config_file=config_file, env_file=env_file)

    assert settings.get_config("input_dir") == "yaml-input"
    assert settings.get_config("processed_dir") == "dotenv-processed"
    assert settings.get_config("failed_dir") == "env-failed"
    assert settings.get_config("worker_cache.ttl_seconds") == 120


def test_non_mapping_yaml_is_ignored(fresh_config):
    config_file = fresh_config / "config.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    settings.load_configuration(config_file=config_file, env_file=fresh_config / "missing.env")

    assert settings.get_config("input_dir", "input") == "input"


def test_get_environment_reads_prefixed_variables(monkeypatch):
    for suffix, value in [("TOKEN_URL", "https://auth.example.test/token"), ("API_URL", "https://api.example.test"),
                          ("CLIENT_ID", "id"), ("CLIENT_SECRET", "secret"), ("REFRESH_TOKEN", "refresh")]:
        monkeypatch.setenv(f"SANDBOX_PREVIEW_{suffix}", value)

    environment = settings.get_environment("sandbox_preview")

    assert environment.name == "sandbox_preview"
    assert environment.token_url == "https://auth.example.test/token"
    assert "secret" not in repr(environment)
    assert "refresh" not in repr(environment)


def test_get_environment_missing_variable():
    settings.set_config_for_testing({"PRODUCTION_TOKEN_URL": "https://auth.example.test/token"})

    with pytest.raises(ConfigurationError, match="PRODUCTION_API_URL"):
        settings.get_environment("production")


def test_get_environment_unknown_name():
    with pytest.raises(ConfigurationError, match="Unknown environment"):
        settings.get_environment("staging")


def test_app_config_defaults_and_overrides():
    settings.set_config_for_testing({"max_concurrent_uploads": "8", "log_level": "debug"})

    config = settings.get_app_config()

    assert config.max_concurrent_uploads == 8
    assert config.log_level == "debug"
    assert config.max_file_size_mb == 25
    assert config.failure_prompt_threshold == 10
    assert config.token_ttl_seconds == 3300


def test_app_config_rejects_invalid_numbers():
    settings.set_config_for_testing({"max_concurrent_uploads": "many"})

    with pytest.raises(ConfigurationError, match="Invalid application setting"):
        settings.get_app_config()
