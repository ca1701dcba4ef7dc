"""Exception taxonomy for tool discovery and invocation."""

from typing import Any, Dict, Optional


class AutoMcpError(Exception):
    """Base exception class for Auto MCP errors."""
    def __init__(self, message: str, error_code: str = "AUTO_MCP_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvocationContextError(AutoMcpError, ValueError):
    """Raised when a tool call arrives without a service-resolution context."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "ARGUMENT_ERROR", details)


class AmbientRequestError(AutoMcpError, RuntimeError):
    """Raised when no ambient HTTP request is available to a tool call."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "ENVIRONMENT_ERROR", details)


class ConfigurationError(AutoMcpError):
    """Exception for operation metadata that cannot be turned into a request."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class DependencyResolutionError(AutoMcpError):
    """Raised when a handler dependency cannot be satisfied by the service scope."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DEPENDENCY_ERROR", details)


class ToolNameCollisionError(AutoMcpError):
    """Raised when two operations reduce to the same tool name."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TOOL_NAME_COLLISION", details)


class QueryOptionsError(AutoMcpError, ValueError):
    """Raised for unknown, unsupported or malformed query options."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "QUERY_OPTIONS_ERROR", details)
