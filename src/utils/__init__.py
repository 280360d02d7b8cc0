"""Utility modules for Tedee Hub."""

from utils.errors import (
    ErrorCategory,
    TedeeError,
    ToolError,
    classify_exception,
)
from utils.i18n import set_language, translate

__all__ = [
    "ErrorCategory",
    "TedeeError",
    "ToolError",
    "classify_exception",
    "set_language",
    "translate",
]
