"""MCP Server exposing Actual Budget data to AI agents."""

import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from .client import ActualClient
from .config import Settings, load_settings
from .money import DEFAULT_CURRENCY_SYMBOL, AmountValidationError
from .routes import (
    bills_due,
    budget_check,
    create_transaction,
    get_transactions,
    list_accounts,
    list_categories,
    spending_summary,
)
from .utils import RequestError


logger = logging.getLogger(__name__)

# Initialize MCP server
server = Server("actual-ai-mcp")

# Global state
_settings: Settings | None = None
_client: ActualClient | None = None
_currency_symbol: str | None = None

MONTH_PROPERTY = {
    "type": "string",
    "description": "Month in YYYY-MM format. Defaults to the current month.",
}


def get_settings() -> Settings:
    """Get or load settings from the environment."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_client() -> ActualClient:
    """Get or create the Actual Budget API client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = ActualClient(
            settings.api_url,
            settings.api_key,
            settings.budget_sync_id,
            encryption_password=settings.encryption_password,
            timeout=settings.timeout,
        )
    return _client


def get_currency_symbol() -> str:
    if _currency_symbol is not None:
        return _currency_symbol
    return get_settings().currency_symbol


def init_for_testing(client: Any, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> None:
    """Initialize server with a test client.

    Args:
        client: Object with the ActualClient coroutine methods.
        currency_symbol: Prefix for display amounts.
    """
    global _client, _currency_symbol
    _client = client
    _currency_symbol = currency_symbol


def _as_text(result: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(result, ensure_ascii=False, indent=2))]


# ============================================================================
# Tools
# ============================================================================

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="budget_check",
            description="Check budget status per category. Answers: 'Can I afford this?', 'How much is left for groceries?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "description": "Category name or ID to filter. If omitted, returns all categories.",
                    },
                    "month": MONTH_PROPERTY,
                },
            },
        ),
        Tool(
            name="bills_due",
            description="Get scheduled bills: upcoming, past due and paid. Answers: 'What bills are left?', 'Did I pay rent?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "month": {
                        "type": "string",
                        "description": "Month(s) in YYYY-MM format, single or comma-separated (e.g. '2025-12,2026-01'). Defaults to the current month.",
                    },
                },
            },
        ),
        Tool(
            name="get_transactions",
            description="List a month's transactions with payee and category names, plus top categories and payees.",
            inputSchema={
                "type": "object",
                "properties": {
                    "month": MONTH_PROPERTY,
                },
            },
        ),
        Tool(
            name="create_transaction",
            description=(
                "Create a transaction using account, category and payee names. "
                "Unknown payees are created. amount (cents) must equal amount_major * 100."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "account_name": {
                        "type": "string",
                        "description": "Name of the account (case-insensitive match)",
                    },
                    "date": {
                        "type": "string",
                        "description": "Transaction date (YYYY-MM-DD). Defaults to today.",
                    },
                    "amount": {
                        "type": "integer",
                        "description": "Amount in cents (negative for expenses), e.g. -15000",
                    },
                    "amount_major": {
                        "type": "number",
                        "description": "Amount in major currency units, e.g. -150.00. Must equal amount / 100.",
                    },
                    "payee_name": {
                        "type": "string",
                        "description": "Payee name. Created if it doesn't exist.",
                    },
                    "category_name": {
                        "type": "string",
                        "description": "Category name (case-insensitive match)",
                    },
                    "notes": {
                        "type": "string",
                        "description": "Optional notes/memo",
                    },
                },
                "required": ["account_name", "amount", "amount_major"],
            },
        ),
        Tool(
            name="list_accounts",
            description="List open accounts with balances. Use to decide which account a transaction belongs to.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="list_categories",
            description="List categories grouped by category group. Use to decide which category a transaction belongs to.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="spending_summary",
            description="Analyze a month's spending: top categories, top payees, largest transactions, daily average. Answers: 'Where did my money go?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "month": MONTH_PROPERTY,
                },
            },
        ),
    ]


async def _dispatch(name: str, arguments: dict[str, Any]) -> Any:
    client = get_client()
    currency_symbol = get_currency_symbol()

    if name == "budget_check":
        return await budget_check(
            client,
            category=arguments.get("category"),
            month=arguments.get("month"),
            currency_symbol=currency_symbol,
        )

    elif name == "bills_due":
        return await bills_due(
            client,
            month=arguments.get("month"),
            currency_symbol=currency_symbol,
        )

    elif name == "get_transactions":
        return await get_transactions(
            client,
            month=arguments.get("month"),
            currency_symbol=currency_symbol,
        )

    elif name == "create_transaction":
        return await create_transaction(
            client,
            arguments,
            currency_symbol=currency_symbol,
        )

    elif name == "list_accounts":
        return await list_accounts(client, currency_symbol=currency_symbol)

    elif name == "list_categories":
        return await list_categories(client)

    elif name == "spending_summary":
        return await spending_summary(
            client,
            month=arguments.get("month"),
            currency_symbol=currency_symbol,
        )

    else:
        raise ValueError(f"Unknown tool: {name}")


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls.

    Invalid arguments come back as an {"error": ...} payload so the agent
    can correct its request.
    """
    arguments = arguments or {}
    try:
        result = await _dispatch(name, arguments)
    except (AmountValidationError, RequestError) as e:
        logger.info("Rejected %s call: %s", name, e)
        return _as_text({"error": str(e)})

    return _as_text(result)


# ============================================================================
# Main
# ============================================================================

def main() -> None:
    """Run the MCP server."""
    import asyncio

    from mcp.server.stdio import stdio_server

    settings = get_settings()
    # stdout carries the MCP stream
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Serving budget %s from %s", settings.budget_sync_id, settings.api_url)

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
