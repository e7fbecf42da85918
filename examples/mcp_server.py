#!/usr/bin/env python3
"""Small MCP server with two unit-conversion tools, used by mcp_agent.py.

Run standalone (stdio):
    python examples/mcp_server.py
"""

from mcp.server.fastmcp import FastMCP

server = FastMCP("units")


@server.tool()
def km_to_miles(km: float) -> str:
    """Convert kilometres to miles."""
    return f"{km} km = {km * 0.621371:.2f} mi"


@server.tool()
def celsius_to_fahrenheit(celsius: float) -> str:
    """Convert degrees Celsius to Fahrenheit."""
    return f"{celsius} °C = {celsius * 9 / 5 + 32:.1f} °F"


if __name__ == "__main__":
    server.run(transport="stdio")
