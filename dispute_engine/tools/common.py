"""Helpers shared by the dispute tools."""

from typing import Any

from dispute_engine.errors import DisputeError


def error_response(error: DisputeError) -> dict[str, Any]:
    """Translate a domain error into the tools' failure payload."""
    return {"success": False, **error.to_dict()}
