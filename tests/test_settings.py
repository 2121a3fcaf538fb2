from pathlib import Path

import pytest

from schemacheck.errors import ConfigurationError
from schemacheck.settings import DEFAULT_PARENT_URL, load_settings


def test_defaults_when_file_missing(tmp_path):
    settings = load_settings(tmp_path / "missing.toml", environ={})
    assert settings.schemas.parent_url == DEFAULT_PARENT_URL
    assert settings.fetch.timeout_seconds == 5.0
    assert settings.schemas.duplicate_refs == "last"
    assert settings.app.resources_dir == Path("resources")


def test_file_env_and_overrides_layer(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text(
        '[schemas]\nparent_url = "https://file/parent.json"\nduplicate_refs = "reject"\n'
        "[fetch]\ntimeout_seconds = 2\n",
        encoding="utf-8",
    )
    settings = load_settings(path, environ={"SCHEMACHECK_FETCH_TIMEOUT": "3.5"})
    assert settings.schemas.parent_url == "https://file/parent.json"
    assert settings.schemas.duplicate_refs == "reject"
    assert settings.fetch.timeout_seconds == 3.5

    settings = load_settings(
        path,
        environ={"SCHEMACHECK_PARENT_URL": "https://env/parent.json"},
        overrides={"schemas": {"parent_url": "https://cli/parent.json"}, "app": {"resources_dir": None}},
    )
    assert settings.schemas.parent_url == "https://cli/parent.json"
    assert settings.app.resources_dir == Path("resources")


@pytest.mark.parametrize(
    "text",
    [
        "[fetch]\ntimeout_seconds = 0\n",
        '[schemas]\nduplicate_refs = "first"\n',
        "[fetch\n",
    ],
)
def test_invalid_settings(tmp_path, text):
    path = tmp_path / "settings.toml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(path, environ={})
