"""Protocol-callable CRM tools."""

from .base import BaseTool, ToolResult
from .registry import ToolRegistry, UnknownToolError, build_default_registry

__all__ = [
    "BaseTool",
    "ToolRegistry",
    "ToolResult",
    "UnknownToolError",
    "build_default_registry",
]
