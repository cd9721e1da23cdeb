"""JSON output formatter for CLI."""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from sqlmigrate.cli.formatters.base import OutputFormat, OutputFormatter


class JsonFormatter(OutputFormatter[Any]):
    """Generic JSON formatter for CLI output."""

    def _to_jsonable(self, data: Any) -> Any:
        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            return dataclasses.asdict(data)
        if isinstance(data, list | tuple):
            return [self._to_jsonable(item) for item in data]
        return data

    def format(self, data: Any, format_type: OutputFormat = OutputFormat.JSON) -> str:  # noqa: ARG002
        """Format data as JSON.

        Args:
            data: Data to format
            format_type: Output format type (ignored, always JSON)

        Returns:
            JSON string
        """
        data = self._to_jsonable(data)
        if isinstance(data, dict | list):
            return json.dumps(data, default=str, indent=2)
        return json.dumps({"value": data}, default=str, indent=2)

    def format_success(self, message: str, data: Any = None) -> str:
        """Format a success response.

        Args:
            message: Success message
            data: Optional additional data

        Returns:
            JSON string
        """
        response: dict[str, Any] = {"success": True, "message": message}
        if data is not None:
            response["data"] = self._to_jsonable(data)
        return json.dumps(response, default=str, indent=2)

    def format_error_response(
        self, error: str | Exception, code: int = 1, data: Any = None
    ) -> str:
        """Format an error response.

        Args:
            error: Error message or exception
            code: Error code
            data: Optional additional data, such as partial progress

        Returns:
            JSON string
        """
        error_msg = str(error) if isinstance(error, Exception) else error

        response: dict[str, Any] = {"success": False, "error": error_msg, "code": code}
        if data is not None:
            response["data"] = self._to_jsonable(data)
        return json.dumps(response, default=str, indent=2)
