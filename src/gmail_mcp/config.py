"""
Configuration for the Gmail MCP server.

Credentials come from the process environment, optionally seeded from a
.env file. They are read once into an immutable GmailConfig which every
tool shares; nothing reads os.environ after startup.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465
DEFAULT_SMTP_TIMEOUT = 30.0
DEFAULT_AUTH_METHOD = "app_password"

SMTP_VARIABLES = ("GMAIL_USER", "GMAIL_APP_PASSWORD")
OAUTH_VARIABLES = (
    "GMAIL_CLIENT_ID",
    "GMAIL_CLIENT_SECRET",
    "GMAIL_REDIRECT_URI",
    "GMAIL_REFRESH_TOKEN",
)


def load_env_file(path: Optional[Path] = None) -> Optional[Path]:
    """
    Load a .env file into the environment without overriding variables that
    are already set.

    Args:
        path: Explicit file to load. Defaults to $GMAIL_MCP_ENV_FILE, then
              .env in the current working directory.

    Returns:
        The file that was loaded, or None when only the process environment
        is used.
    """
    candidates = []
    if path is not None:
        candidates.append(Path(path))
    elif os.environ.get("GMAIL_MCP_ENV_FILE"):
        candidates.append(Path(os.environ["GMAIL_MCP_ENV_FILE"]).expanduser())
    else:
        candidates.append(Path.cwd() / ".env")

    for candidate in candidates:
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            logger.info(f"Loaded .env from: {candidate}")
            return candidate

    logger.info("Using system environment variables (no .env file found)")
    return None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class GmailConfig:
    """Snapshot of every setting the server needs"""

    user: Optional[str] = None
    app_password: Optional[str] = None
    auth_method: str = DEFAULT_AUTH_METHOD
    sender_name: Optional[str] = None

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    refresh_token: Optional[str] = None

    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_timeout: float = DEFAULT_SMTP_TIMEOUT
    template_dir: Path = DEFAULT_TEMPLATE_DIR

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GmailConfig":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            return _clean(env.get(name))

        port_raw = get("GMAIL_SMTP_PORT")
        try:
            smtp_port = int(port_raw) if port_raw else DEFAULT_SMTP_PORT
        except ValueError:
            raise ConfigurationError(f"GMAIL_SMTP_PORT must be an integer, got {port_raw!r}")

        timeout_raw = get("GMAIL_SMTP_TIMEOUT")
        try:
            smtp_timeout = float(timeout_raw) if timeout_raw else DEFAULT_SMTP_TIMEOUT
        except ValueError:
            raise ConfigurationError(f"GMAIL_SMTP_TIMEOUT must be a number, got {timeout_raw!r}")

        template_dir = get("GMAIL_TEMPLATE_DIR")

        return cls(
            user=get("GMAIL_USER"),
            app_password=get("GMAIL_APP_PASSWORD"),
            auth_method=get("GMAIL_AUTH_METHOD") or DEFAULT_AUTH_METHOD,
            sender_name=get("GMAIL_SENDER_NAME"),
            client_id=get("GMAIL_CLIENT_ID"),
            client_secret=get("GMAIL_CLIENT_SECRET"),
            redirect_uri=get("GMAIL_REDIRECT_URI"),
            refresh_token=get("GMAIL_REFRESH_TOKEN"),
            smtp_host=get("GMAIL_SMTP_HOST") or DEFAULT_SMTP_HOST,
            smtp_port=smtp_port,
            smtp_timeout=smtp_timeout,
            template_dir=Path(template_dir).expanduser() if template_dir else DEFAULT_TEMPLATE_DIR,
        )

    def missing_smtp(self) -> List[str]:
        """Names of unset variables required to send mail"""
        values = (self.user, self.app_password)
        return [name for name, value in zip(SMTP_VARIABLES, values) if not value]

    def missing_oauth(self) -> List[str]:
        """Names of unset variables required by the inbox tools"""
        values = (self.client_id, self.client_secret, self.redirect_uri, self.refresh_token)
        return [name for name, value in zip(OAUTH_VARIABLES, values) if not value]

    @property
    def smtp_configured(self) -> bool:
        return not self.missing_smtp()

    @property
    def oauth_configured(self) -> bool:
        return not self.missing_oauth()

    def log_summary(self) -> None:
        """Log which credentials are present without revealing them"""
        logger.info("Environment check:")
        for name, value in zip(SMTP_VARIABLES + OAUTH_VARIABLES, (
            self.user, self.app_password,
            self.client_id, self.client_secret, self.redirect_uri, self.refresh_token,
        )):
            logger.info(f"{name}: {'SET' if value else 'MISSING'}")
        logger.info(f"Template directory: {self.template_dir}")
