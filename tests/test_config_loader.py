from pathlib import Path

from config.loader import ConfigLoader


def test_env_file_is_loaded(monkeypatch, tmp_path):
    # setenv first so monkeypatch removes what load_dotenv sets
    monkeypatch.setenv("TASKBOARD_TEST_URL", "placeholder")
    monkeypatch.delenv("TASKBOARD_TEST_URL")
    env_file = tmp_path / ".env"
    env_file.write_text("TASKBOARD_TEST_URL=https://api.example.test\n")

    loader = ConfigLoader(str(env_file))

    assert loader.get("TASKBOARD_TEST_URL", "http://localhost") == "https://api.example.test"


def test_defaults_when_unset(monkeypatch, tmp_path):
    monkeypatch.delenv("REFRESH_SKEW_TEST", raising=False)
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("REFRESH_SKEW_TEST", 300) == 300


def test_values_are_coerced_to_default_type(monkeypatch, tmp_path):
    loader = ConfigLoader(str(tmp_path / "missing.env"))
    monkeypatch.setenv("SKEW_TEST", "120")
    monkeypatch.setenv("TIMEOUT_TEST", "2.5")
    monkeypatch.setenv("FLAG_TEST", "yes")

    assert loader.get("SKEW_TEST", 300) == 120
    assert loader.get("TIMEOUT_TEST", 10.0) == 2.5
    assert loader.get("FLAG_TEST", False) is True


def test_unparseable_number_falls_back_to_default(monkeypatch, tmp_path):
    loader = ConfigLoader(str(tmp_path / "missing.env"))
    monkeypatch.setenv("SKEW_TEST", "five minutes")

    assert loader.get("SKEW_TEST", 300) == 300


def test_home_relative_default_is_expanded(monkeypatch, tmp_path):
    monkeypatch.delenv("TOKEN_FILE_TEST", raising=False)
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("TOKEN_FILE_TEST", "~/tokens.json") == str(Path.home() / "tokens.json")
