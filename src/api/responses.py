"""Response envelopes: `{success, description, body}`."""

from __future__ import annotations

from typing import Any

from fastapi import status


class ApiError(Exception):
    """Turned into a `success: false` envelope with the given status code."""

    def __init__(self, status_code: int, description: str) -> None:
        super().__init__(description)
        self.status_code = status_code
        self.description = description


def ok(description: str, body: Any) -> dict[str, Any]:
    return {"success": True, "description": description, "body": body}


def failure(description: str) -> dict[str, Any]:
    return {"success": False, "description": description}


def bad_request(description: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, description)


def not_found(description: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, description)


__all__ = ["ApiError", "bad_request", "failure", "not_found", "ok"]
