"""Shared pytest fixtures."""

from unittest.mock import MagicMock

import pytest

from gmail_mcp import gmail_mcp as server
from gmail_mcp.config import GmailConfig

OAUTH_VALUES = {
    "client_id": "client-id",
    "client_secret": "client-secret",
    "redirect_uri": "http://localhost:8080/callback",
    "refresh_token": "refresh-token",
}


@pytest.fixture
def template_dir(tmp_path):
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture
def make_config(template_dir):
    """Build a GmailConfig with SMTP credentials set; keyword overrides win."""
    def factory(oauth=False, **overrides):
        values = {
            "user": "me@example.com",
            "app_password": "app-password",
            "template_dir": template_dir,
        }
        if oauth:
            values.update(OAUTH_VALUES)
        values.update(overrides)
        return GmailConfig(**values)
    return factory


@pytest.fixture
def use_config():
    """Install a configuration snapshot for the tools, reset afterwards."""
    def install(config):
        server.set_config(config)
        return config
    yield install
    server.set_config(None)


@pytest.fixture
def smtp(monkeypatch):
    """Replace smtplib.SMTP_SSL; the connection is smtp.return_value."""
    smtp_cls = MagicMock()
    smtp_cls.return_value.send_message.return_value = {}
    monkeypatch.setattr("gmail_mcp.delivery.smtplib.SMTP_SSL", smtp_cls)
    return smtp_cls


@pytest.fixture
def gmail_service(monkeypatch):
    """Replace googleapiclient's build(); returns the fake Gmail service."""
    service = MagicMock()
    build = MagicMock(return_value=service)
    monkeypatch.setattr("gmail_mcp.inbox.build", build)
    service.build = build
    return service


def sent_message(smtp_cls):
    """The EmailMessage passed to the last send_message call."""
    return smtp_cls.return_value.send_message.call_args[0][0]
