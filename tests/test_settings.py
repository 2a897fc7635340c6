import pytest
from pydantic import ValidationError

from campusnav.config import settings as settings_module
from campusnav.config.settings import (
    PROJECT_ROOT,
    GeminiConfig,
    NavigationConfig,
    Settings,
    SpeechConfig,
    get_settings,
)


def test_defaults():
    settings = Settings()
    assert settings.navigation.locate_threshold == 0.75
    assert settings.navigation.destination_threshold == 0.6
    assert settings.navigation.arrival_threshold == 0.7
    assert settings.gemini.model == "gemini-2.5-flash"


def test_bundled_config_loads():
    settings = Settings.load(PROJECT_ROOT / "config" / "config.yaml")
    assert settings.campus.graph_path == PROJECT_ROOT / "config" / "campus.yaml"
    assert settings.campus.graph_path.exists()


def test_load_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "navigation:\n"
        "  locate_threshold: 0.9\n"
        "logging:\n"
        "  level: debug\n"
        "campus:\n"
        f"  graph_file: {tmp_path / 'campus.yaml'}\n"
    )

    settings = Settings.load(path)

    assert settings.navigation.locate_threshold == 0.9
    assert settings.navigation.destination_threshold == 0.6
    assert settings.logging.level == "DEBUG"
    assert settings.campus.graph_path == tmp_path / "campus.yaml"


def test_missing_file_gives_defaults(tmp_path):
    assert Settings.load(tmp_path / "nope.yaml") == Settings()


@pytest.mark.parametrize("value", [0.0, -0.2, 1.5])
def test_threshold_range(value):
    with pytest.raises(ValidationError):
        NavigationConfig(locate_threshold=value)


def test_reminder_ordering():
    with pytest.raises(ValidationError):
        SpeechConfig(moving_reminder_seconds=30.0, stationary_reminder_seconds=10.0)


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        Settings(logging={"level": "LOUD"})


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("CAMPUSNAV_TEST_KEY", "secret")
    assert GeminiConfig(api_key_env="CAMPUSNAV_TEST_KEY").api_key == "secret"

    monkeypatch.delenv("CAMPUSNAV_TEST_KEY")
    with pytest.raises(ValueError):
        GeminiConfig(api_key_env="CAMPUSNAV_TEST_KEY").api_key


def test_get_settings_is_cached(tmp_path, monkeypatch):
    monkeypatch.setattr(settings_module, "_settings", None)
    first = get_settings(tmp_path / "none.yaml")
    assert get_settings() is first
    assert get_settings(tmp_path / "none.yaml", reload=True) is not first
