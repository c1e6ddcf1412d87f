"""
Error types raised by the Gmail MCP server components.

Every error below is caught at the tool boundary and reported to the MCP
client as text; none of them stops the server.
"""

from typing import Iterable, Optional


class GmailMCPError(Exception):
    """Base class for all expected, reportable failures"""


class ConfigurationError(GmailMCPError):
    """A configuration value is present but unusable (e.g. a non-numeric port)"""


class ConfigurationMissing(GmailMCPError):
    """Required credentials are absent from the environment"""

    def __init__(self, missing: Iterable[str], message: Optional[str] = None):
        self.missing = tuple(missing)
        if message is None:
            message = f"Missing configuration: {', '.join(self.missing)}"
        super().__init__(message)


class InvalidTemplateName(GmailMCPError):
    """Template name contains path separators, '..' or other unsafe characters"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Invalid template name: {name!r}. "
            "Use letters, digits, '-' and '_' only."
        )


class TemplateNotFound(GmailMCPError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Template not found: {name}")


class TemplateRenderError(GmailMCPError):
    """Placeholder substitution failed; nothing was sent"""


class DeliveryFailure(GmailMCPError):
    """The SMTP server rejected the message or could not be reached"""


class InboxFailure(GmailMCPError):
    """The Gmail API rejected an inbox request"""
