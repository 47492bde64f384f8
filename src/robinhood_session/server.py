"""
Robinhood MCP Server - Main entry point

Exposes Robinhood market, account and order data via Model Context Protocol.
Order placement is not exposed as a tool.
"""

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .client import RobinhoodClient
from .config import settings
from .errors import ErrorEvent
from .events import Event
from .tools import account, orders, quotes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings().log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# Global instance (initialized lazily)
_robinhood_client: RobinhoodClient | None = None

LOGIN_WITH_MFA_SCHEMA = {
    "type": "object",
    "properties": {
        "mfa_code": {
            "type": "string",
            "description": "One-time code from the authenticator app or SMS",
        }
    },
    "required": ["mfa_code"],
}


def _log_error(error: ErrorEvent) -> None:
    logger.error(f"Session error {error.type.value}: {error.message}")


def _log_critical(error: ErrorEvent) -> None:
    logger.critical(f"Session unrecoverable {error.type.value}: {error.message}")


def get_robinhood_client() -> RobinhoodClient:
    """Get or create RobinhoodClient instance."""
    global _robinhood_client
    if _robinhood_client is None:
        cfg = settings()
        _robinhood_client = RobinhoodClient(
            api_url=cfg.robinhood_api_url,
            timeout=cfg.robinhood_timeout,
            reauth_timeout=cfg.robinhood_reauth_timeout,
        )
        _robinhood_client.on(Event.ERROR, _log_error)
        _robinhood_client.on(Event.CRITICAL, _log_critical)
        _robinhood_client.on(Event.AUTHENTICATED, lambda: logger.info("Session authenticated"))
        _robinhood_client.on(
            Event.MFA_REQUESTED,
            lambda details: logger.warning(
                f"MFA required ({details.get('mfa_type')}), call the login_with_mfa tool"
            ),
        )
    return _robinhood_client


async def login_with_mfa(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    """Submit an MFA code and wait for the outcome."""
    authenticated = client.events.wait_for(Event.AUTHENTICATED)
    failed = client.events.wait_for(Event.ERROR)
    client.login_with_mfa(args["mfa_code"])

    done, pending = await asyncio.wait(
        {authenticated, failed},
        timeout=float(settings().robinhood_timeout),
        return_when=asyncio.FIRST_COMPLETED,
    )
    for future in pending:
        future.cancel()

    if authenticated in done:
        return {"authenticated": True}
    if failed in done:
        error = failed.result()
        return {"authenticated": False, "error_type": error.type.value, "message": error.message}
    return {"authenticated": False, "message": "Timed out waiting for authentication"}


# Initialize MCP server
server = Server("robinhood-session")


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="get_quote",
            description="Get real-time quotes (last price, bid/ask, previous close) for one or more symbols",
            inputSchema=quotes.GET_QUOTE_SCHEMA,
        ),
        Tool(
            name="get_instrument",
            description="Look up a tradable instrument by symbol or instrument id",
            inputSchema=quotes.GET_INSTRUMENT_SCHEMA,
        ),
        Tool(
            name="get_fundamentals",
            description="Get fundamentals (market cap, P/E, 52-week range, sector) for a symbol",
            inputSchema=quotes.GET_FUNDAMENTALS_SCHEMA,
        ),
        Tool(
            name="get_accounts",
            description="Get brokerage accounts with cash and buying power",
            inputSchema=account.GET_ACCOUNTS_SCHEMA,
        ),
        Tool(
            name="get_orders",
            description="List orders, optionally only those updated since a date",
            inputSchema=orders.GET_ORDERS_SCHEMA,
        ),
        Tool(
            name="get_order",
            description="Get a single order by id",
            inputSchema=orders.GET_ORDER_SCHEMA,
        ),
        Tool(
            name="login_with_mfa",
            description="Complete login with a multi-factor authentication code",
            inputSchema=LOGIN_WITH_MFA_SCHEMA,
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool invocations."""
    logger.info(f"Tool called: {name}")
    logger.debug(f"Arguments: {arguments if name != 'login_with_mfa' else '***'}")

    client = get_robinhood_client()

    handlers: dict[str, Any] = {
        "get_quote": lambda args: quotes.get_quote(client, args),
        "get_instrument": lambda args: quotes.get_instrument(client, args),
        "get_fundamentals": lambda args: quotes.get_fundamentals(client, args),
        "get_accounts": lambda args: account.get_accounts(client, args),
        "get_orders": lambda args: orders.get_orders(client, args),
        "get_order": lambda args: orders.get_order(client, args),
        "login_with_mfa": lambda args: login_with_mfa(client, args),
    }

    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")

    try:
        result = await handler(arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}", exc_info=True)
        error_response = {
            "error": True,
            "error_type": type(e).__name__,
            "message": str(e),
        }
        return [TextContent(type="text", text=json.dumps(error_response, indent=2))]


async def run_server():
    """Authenticate from settings, then run the MCP server."""
    logger.info("Starting Robinhood MCP Server...")

    options = settings().auth_options()
    if options is None:
        logger.warning(
            "No ROBINHOOD_AUTH_TOKEN or ROBINHOOD_USERNAME/ROBINHOOD_PASSWORD configured"
        )
    else:
        get_robinhood_client().authenticate(options)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main():
    """Entry point for the server."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
