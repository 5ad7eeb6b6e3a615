#!/usr/bin/env python3
"""Exception classes for Xcodebuild MCP Server"""


class XcodebuildMCPError(Exception):
    def __init__(self, message, code=None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class AccessDeniedError(XcodebuildMCPError):
    pass


class InvalidParameterError(XcodebuildMCPError):
    pass
