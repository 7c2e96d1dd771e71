"""CLI output formatting (JSON or text)."""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

from ..core.exceptions import EmbeddedCassandraError


class OutputFormatter:
    """Output formatter shared by all commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def success(self, data: Dict[str, Any], message: str, *, status: str = "success") -> None:
        if self.json_mode:
            print(json.dumps({"status": status, **data}, indent=self.indent, default=str))
        else:
            print(message)

    def error(self, error: Exception, message: Optional[str] = None, *, error_code: str = "error") -> None:
        """Report ``error`` on stderr; package errors carry their context in JSON mode."""
        msg = message or str(error)
        if self.json_mode:
            if isinstance(error, EmbeddedCassandraError):
                output = {"error": error_code, **error.to_json_error()}
                if message:
                    output["message"] = message
            else:
                output = {"error": error_code, "message": msg}
            print(json.dumps(output, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)


__all__ = ["OutputFormatter"]
