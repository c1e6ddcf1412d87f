"""
SMTP delivery through Gmail.

Thin wrapper over smtplib: builds the MIME message, logs in with the
account's app password and hands the message over. Calls are blocking;
the server runs them with asyncio.to_thread.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from .config import GmailConfig
from .errors import ConfigurationMissing, DeliveryFailure
from .templating import ComposedMessage

logger = logging.getLogger(__name__)


class SmtpGateway:
    def __init__(self, config: GmailConfig):
        self.config = config

    def _require_credentials(self) -> None:
        missing = self.config.missing_smtp()
        if missing:
            raise ConfigurationMissing(
                missing,
                "Gmail configuration not found. Please check your .env file.",
            )

    def _sender(self) -> str:
        if self.config.sender_name:
            return formataddr((self.config.sender_name, self.config.user))
        return self.config.user

    def build_message(self, message: ComposedMessage) -> EmailMessage:
        msg = EmailMessage()
        try:
            msg["From"] = self._sender()
            msg["To"] = message.to
            msg["Subject"] = message.subject
        except ValueError as e:
            raise DeliveryFailure(f"Invalid email header: {e}")
        domain = self.config.user.rpartition("@")[2] or None
        msg["Message-ID"] = make_msgid(domain=domain)
        if message.is_html:
            msg.set_content(message.body, subtype="html")
        else:
            msg.set_content(message.body)
        return msg

    def _connect(self) -> smtplib.SMTP_SSL:
        logger.debug(f"Connecting to {self.config.smtp_host}:{self.config.smtp_port} as {self.config.user}")
        smtp = smtplib.SMTP_SSL(
            self.config.smtp_host,
            self.config.smtp_port,
            timeout=self.config.smtp_timeout,
        )
        try:
            smtp.login(self.config.user, self.config.app_password)
        except Exception:
            smtp.close()
            raise
        return smtp

    def send(self, message: ComposedMessage) -> str:
        """
        Send a composed message.

        Returns:
            The Message-ID assigned to the outgoing message

        Raises:
            ConfigurationMissing: GMAIL_USER or GMAIL_APP_PASSWORD unset
            DeliveryFailure: connection, authentication or recipient errors
        """
        self._require_credentials()
        msg = self.build_message(message)

        try:
            smtp = self._connect()
            try:
                refused = smtp.send_message(msg)
            finally:
                smtp.quit()
        except smtplib.SMTPException as e:
            raise DeliveryFailure(f"Gmail rejected the message: {e}")
        except OSError as e:
            raise DeliveryFailure(f"Could not reach {self.config.smtp_host}: {e}")

        if refused:
            logger.warning(f"Some recipients were refused: {sorted(refused)}")
        logger.info(f"Sent email to {message.to} ({msg['Message-ID']})")
        return msg["Message-ID"]

    def verify(self) -> None:
        """Check that the SMTP login succeeds without sending anything"""
        self._require_credentials()
        try:
            smtp = self._connect()
            smtp.quit()
        except smtplib.SMTPException as e:
            raise DeliveryFailure(str(e))
        except OSError as e:
            raise DeliveryFailure(f"Could not reach {self.config.smtp_host}: {e}")
