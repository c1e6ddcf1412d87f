#!/usr/bin/env python3
"""
Gmail MCP Server - FastMCP implementation
Provides tools to send Gmail messages (plain, templated, introduction) and,
with OAuth2 credentials, to read and tidy the inbox
"""

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from mcp.server.fastmcp import FastMCP

from .config import GmailConfig
from .delivery import SmtpGateway
from .errors import ConfigurationMissing, DeliveryFailure, GmailMCPError
from .inbox import GmailInbox
from .results import ToolResult
from .templating import (
    ComposedMessage,
    TemplateRenderer,
    TemplateStore,
    compose_message,
    parse_template,
)

# Configure logging
logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("Gmail MCP")

# Configuration snapshot shared by all tools, set once by main()
_config: Optional[GmailConfig] = None

_renderer = TemplateRenderer()

OAUTH_MISSING_MESSAGE = (
    "OAuth2 environment variables missing. Provide GMAIL_CLIENT_ID, "
    "GMAIL_CLIENT_SECRET, GMAIL_REDIRECT_URI, GMAIL_REFRESH_TOKEN to use this tool."
)

INTRODUCTION_SUBJECT = "Introduction - {{ name }}"

INTRODUCTION_BODY = """Dear Recipient,

I hope this email finds you well. I'm writing to introduce myself - I'm {{ name }}, and I wanted to reach out to connect with you.

{% if custom_message %}{{ custom_message }}

{% endif %}I'm a software engineer with experience in various programming technologies including JavaScript, React, and web development. I'm always interested in discussing potential opportunities for collaboration or simply connecting professionally.

Thank you for your time, and I look forward to hearing from you.

Best regards,
{{ name }}
{{ email }}"""


def get_config() -> GmailConfig:
    """Return the shared configuration, reading the environment on first use"""
    global _config
    if _config is None:
        _config = GmailConfig.from_env()
    return _config


def set_config(config: Optional[GmailConfig]) -> None:
    global _config
    _config = config


async def _respond(tool: str, pending: Awaitable[ToolResult]) -> str:
    """
    Await a tool implementation and turn its outcome into response text.

    Expected failures (missing credentials, bad templates, rejected
    deliveries, Gmail API errors) become a tagged result instead of an
    exception, so the client always gets a readable explanation.
    """
    try:
        result = await pending
    except ConfigurationMissing as e:
        logger.warning(f"{tool}: not configured ({', '.join(e.missing)})")
        result = ToolResult.not_configured(str(e), e.missing)
    except GmailMCPError as e:
        logger.error(f"{tool} failed: {e}")
        result = ToolResult.failed(str(e))
    return result.render()


async def _deliver(message: ComposedMessage) -> ToolResult:
    gateway = SmtpGateway(get_config())
    message_id = await asyncio.to_thread(gateway.send, message)
    return ToolResult.ok(f"Email sent successfully! Message ID: {message_id}")


async def _with_inbox(operation: Callable[[GmailInbox], Any]) -> ToolResult:
    config = get_config()
    missing = config.missing_oauth()
    if missing:
        return ToolResult.not_configured(OAUTH_MISSING_MESSAGE, missing)
    inbox = GmailInbox(config)
    data = await asyncio.to_thread(operation, inbox)
    return ToolResult.ok_json(data)


@mcp.tool()
async def send_email(
    to: str,
    subject: str,
    body: str,
    html: bool = False
) -> str:
    """
    Send an email using Gmail.

    Args:
        to: Recipient email address
        subject: Email subject
        body: Email body content
        html: Whether the body is HTML (default: False)

    Returns:
        Confirmation with the Message-ID of the sent email
    """
    message = ComposedMessage(to=to, subject=subject, body=body, is_html=html)
    return await _respond("send_email", _deliver(message))


async def _send_introduction_email(to: str, name: Optional[str], custom_message: str) -> ToolResult:
    config = get_config()
    variables = {
        "name": name or config.sender_name or config.user or "",
        "custom_message": (custom_message or "").strip(),
        "email": config.user or "",
    }
    message = ComposedMessage(
        to=to,
        subject=_renderer.render(INTRODUCTION_SUBJECT, variables),
        body=_renderer.render(INTRODUCTION_BODY, variables),
    )
    return await _deliver(message)


@mcp.tool()
async def send_introduction_email(
    to: str,
    name: Optional[str] = None,
    custom_message: str = ""
) -> str:
    """
    Send a professional introduction email.

    Args:
        to: Recipient email address
        name: Your name (default: GMAIL_SENDER_NAME, then the Gmail address)
        custom_message: Custom message to include

    Returns:
        Confirmation with the Message-ID of the sent email
    """
    return await _respond(
        "send_introduction_email",
        _send_introduction_email(to, name, custom_message),
    )


async def _check_gmail_config() -> ToolResult:
    config = get_config()
    config.log_summary()

    missing = config.missing_smtp()
    if missing:
        return ToolResult.not_configured(
            "Gmail configuration is INCOMPLETE.\n\n"
            f"Current working directory: {os.getcwd()}\n"
            "Please check your .env file exists and contains:\n"
            "GMAIL_USER=your_email@gmail.com\n"
            "GMAIL_APP_PASSWORD=your_16_char_app_password",
            missing,
        )

    try:
        logger.info("Testing Gmail connection...")
        await asyncio.to_thread(SmtpGateway(config).verify)
    except DeliveryFailure as e:
        logger.error(f"Gmail connection failed: {e}")
        return ToolResult.failed(
            f"Gmail configuration error: {e}\n\n"
            "Please check:\n"
            "1. GMAIL_USER is correct\n"
            "2. GMAIL_APP_PASSWORD is valid (generate new one if needed)\n"
            "3. 2-Step Verification is enabled in Google Account"
        )
    logger.info("Gmail connection successful!")

    oauth_missing = config.missing_oauth()
    if oauth_missing:
        inbox_status = f"Unavailable (missing {', '.join(oauth_missing)})"
    else:
        inbox_status = "Available"

    return ToolResult.ok(
        "Gmail configuration is VALID!\n\n"
        f"Email: {config.user}\n"
        f"Auth Method: {config.auth_method}\n"
        "Connection: Verified successfully\n"
        f"Inbox tools: {inbox_status}"
    )


@mcp.tool()
async def check_gmail_config() -> str:
    """
    Check if Gmail configuration is properly set up.

    Reports which credentials are missing, or verifies the SMTP login when
    they are all present.

    Returns:
        Configuration status with guidance on fixing problems
    """
    return await _respond("check_gmail_config", _check_gmail_config())


@mcp.tool()
async def list_labels() -> str:
    """
    List Gmail labels (requires OAuth2 config).

    Returns:
        JSON list of labels with id, name and type
    """
    return await _respond("list_labels", _with_inbox(lambda inbox: inbox.list_labels()))


@mcp.tool()
async def list_unread_emails(
    query: Optional[str] = None,
    max_results: int = 5
) -> str:
    """
    List recent unread emails (requires OAuth2 config).

    Args:
        query: Additional Gmail search query (e.g., "from:boss@example.com")
        max_results: Max number of emails (default: 5, max: 100)

    Returns:
        JSON list of emails with id, sender, subject, date and snippet
    """
    return await _respond(
        "list_unread_emails",
        _with_inbox(lambda inbox: inbox.list_unread(query=query, max_results=max_results)),
    )


@mcp.tool()
async def get_email(id: str) -> str:
    """
    Retrieve a full email by ID (requires OAuth2 config).

    Args:
        id: Gmail message ID

    Returns:
        JSON object with headers, labels and the message body
    """
    return await _respond("get_email", _with_inbox(lambda inbox: inbox.get_email(id)))


@mcp.tool()
async def archive_email(id: str) -> str:
    """
    Archive (remove from INBOX) an email by ID (requires OAuth2 config).

    Args:
        id: Gmail message ID
    """
    return await _respond("archive_email", _with_inbox(lambda inbox: inbox.archive_email(id)))


@mcp.tool()
async def delete_email(id: str) -> str:
    """
    Move an email to trash by ID (requires OAuth2 config).

    Args:
        id: Gmail message ID
    """
    return await _respond("delete_email", _with_inbox(lambda inbox: inbox.delete_email(id)))


async def _list_email_templates() -> ToolResult:
    store = TemplateStore(get_config().template_dir)
    if not store.exists:
        return ToolResult.ok("No templates directory found.")
    names = await asyncio.to_thread(store.list)
    return ToolResult.ok_json(names)


@mcp.tool()
async def list_email_templates() -> str:
    """
    List available email templates.

    Returns:
        JSON list of template names usable with send_template_email
    """
    return await _respond("list_email_templates", _list_email_templates())


async def _send_template_email(
    to: str,
    template: str,
    variables: Optional[Dict[str, Union[str, int, float, bool]]],
    fallback_subject: Optional[str],
    html: bool,
) -> ToolResult:
    store = TemplateStore(get_config().template_dir)
    raw = await asyncio.to_thread(store.read, template)
    message = compose_message(
        to,
        parse_template(raw),
        variables,
        fallback_subject=fallback_subject,
        is_html=html,
        renderer=_renderer,
    )
    logger.info(f"Rendered template {template} for {to}")
    return await _deliver(message)


@mcp.tool()
async def send_template_email(
    to: str,
    template: str,
    variables: Optional[Dict[str, Union[str, int, float, bool]]] = None,
    fallback_subject: Optional[str] = None,
    html: bool = False
) -> str:
    """
    Send an email using a stored template with variables.

    Templates are text files whose optional "Subject: ..." line sets the
    subject; placeholders look like {{name}}. Placeholders without a
    matching variable render as empty text.

    Args:
        to: Recipient email address
        template: Template name (filename without extension)
        variables: Key-value variables for template interpolation
        fallback_subject: Subject if not specified in template
        html: Whether the rendered body is HTML (values are HTML-escaped)

    Returns:
        Confirmation with the Message-ID of the sent email
    """
    return await _respond(
        "send_template_email",
        _send_template_email(to, template, variables, fallback_subject, html),
    )
