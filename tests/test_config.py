import os
from pathlib import Path

import pytest

from gmail_mcp.config import (
    DEFAULT_SMTP_HOST,
    DEFAULT_SMTP_PORT,
    DEFAULT_TEMPLATE_DIR,
    GmailConfig,
    load_env_file,
)
from gmail_mcp.errors import ConfigurationError

FULL_ENV = {
    "GMAIL_USER": "me@example.com",
    "GMAIL_APP_PASSWORD": "abcd efgh ijkl mnop",
    "GMAIL_CLIENT_ID": "cid",
    "GMAIL_CLIENT_SECRET": "secret",
    "GMAIL_REDIRECT_URI": "http://localhost",
    "GMAIL_REFRESH_TOKEN": "refresh",
}


def test_from_env_defaults():
    config = GmailConfig.from_env({})
    assert config.user is None
    assert config.auth_method == "app_password"
    assert config.smtp_host == DEFAULT_SMTP_HOST
    assert config.smtp_port == DEFAULT_SMTP_PORT
    assert config.template_dir == DEFAULT_TEMPLATE_DIR
    assert config.missing_smtp() == ["GMAIL_USER", "GMAIL_APP_PASSWORD"]
    assert config.missing_oauth() == [
        "GMAIL_CLIENT_ID",
        "GMAIL_CLIENT_SECRET",
        "GMAIL_REDIRECT_URI",
        "GMAIL_REFRESH_TOKEN",
    ]
    assert not config.smtp_configured
    assert not config.oauth_configured


def test_from_env_full():
    env = dict(FULL_ENV, GMAIL_SMTP_PORT="587", GMAIL_TEMPLATE_DIR="/srv/templates", GMAIL_AUTH_METHOD="oauth2")
    config = GmailConfig.from_env(env)
    assert config.user == "me@example.com"
    assert config.smtp_port == 587
    assert config.template_dir == Path("/srv/templates")
    assert config.auth_method == "oauth2"
    assert config.smtp_configured
    assert config.oauth_configured


def test_blank_values_count_as_missing():
    config = GmailConfig.from_env(dict(FULL_ENV, GMAIL_APP_PASSWORD="   ", GMAIL_REFRESH_TOKEN=""))
    assert config.missing_smtp() == ["GMAIL_APP_PASSWORD"]
    assert config.missing_oauth() == ["GMAIL_REFRESH_TOKEN"]


def test_invalid_port():
    with pytest.raises(ConfigurationError):
        GmailConfig.from_env({"GMAIL_SMTP_PORT": "smtp"})


def test_config_is_immutable():
    config = GmailConfig.from_env(FULL_ENV)
    with pytest.raises(AttributeError):
        config.user = "someone@example.com"


def test_load_env_file(tmp_path: Path, monkeypatch):
    env_file = tmp_path / "gmail.env"
    env_file.write_text("GMAIL_MCP_TEST_NEW=from-file\nGMAIL_MCP_TEST_SET=from-file\n", encoding="utf-8")
    # register both names so monkeypatch removes them afterwards
    monkeypatch.setenv("GMAIL_MCP_TEST_NEW", "placeholder")
    monkeypatch.delenv("GMAIL_MCP_TEST_NEW")
    monkeypatch.setenv("GMAIL_MCP_TEST_SET", "from-environment")

    assert load_env_file(env_file) == env_file

    assert os.environ["GMAIL_MCP_TEST_NEW"] == "from-file"
    assert os.environ["GMAIL_MCP_TEST_SET"] == "from-environment"


def test_load_env_file_from_variable(tmp_path: Path, monkeypatch):
    env_file = tmp_path / "custom.env"
    env_file.write_text("", encoding="utf-8")
    monkeypatch.setenv("GMAIL_MCP_ENV_FILE", str(env_file))
    assert load_env_file() == env_file


def test_load_env_file_missing(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("GMAIL_MCP_ENV_FILE", raising=False)
    monkeypatch.chdir(tmp_path)
    assert load_env_file() is None
