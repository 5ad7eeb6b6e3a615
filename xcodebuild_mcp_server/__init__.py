"""Xcodebuild MCP Server - build, test and report on Xcode projects via xcodebuild"""

__version__ = "0.1.0"
