#!/usr/bin/env python3
"""FastMCP server instance shared by all tools"""

from mcp.server.fastmcp import FastMCP

mcp = FastMCP("Xcodebuild MCP Server")
