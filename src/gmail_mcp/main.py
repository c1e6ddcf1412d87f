#!/usr/bin/env python3
"""Entry point for gmail-mcp CLI."""

import logging
import os
import sys

from gmail_mcp.config import GmailConfig, load_env_file
from gmail_mcp.errors import ConfigurationError
from gmail_mcp.gmail_mcp import mcp, set_config

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    # stdout carries the MCP protocol, so logs go to stderr
    level = os.environ.get("GMAIL_MCP_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """Run the Gmail MCP server."""
    configure_logging()
    load_env_file()
    try:
        config = GmailConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    config.log_summary()
    set_config(config)
    mcp.run()


if __name__ == "__main__":
    main()
