"""Account tools for the Robinhood MCP server."""

from typing import Any

from ..client import RobinhoodClient
from .quotes import _to_float

# Schema for get_accounts tool
GET_ACCOUNTS_SCHEMA = {
    "type": "object",
    "properties": {},
    "required": [],
}


def _parse_account(data: dict) -> dict[str, Any]:
    """
    Parse one account from the accounts response.

    Args:
        data: One element of the accounts 'results' list

    Returns:
        Account info with balances
    """
    margin = data.get("margin_balances") or {}

    return {
        "account_number": data.get("account_number"),
        "account_type": data.get("type"),
        "deactivated": data.get("deactivated"),
        "balances": {
            "cash": _to_float(data.get("cash")),
            "buying_power": _to_float(data.get("buying_power")),
            "cash_available_for_withdrawal": _to_float(data.get("cash_available_for_withdrawal")),
            "cash_held_for_orders": _to_float(data.get("cash_held_for_orders")),
            "unsettled_funds": _to_float(data.get("unsettled_funds")),
            "margin_limit": _to_float(margin.get("margin_limit")),
        },
    }


async def get_accounts(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    response = await client.get_accounts()
    return {"accounts": [_parse_account(a) for a in response.get("results", [])]}
