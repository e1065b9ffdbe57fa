"""
API error type rendered into the ``{success, error, code, data}`` envelope.

Routes raise ``APIError`` for every deliberate failure; the handlers
registered in ``learnpath.main`` turn it into a JSON response.
"""

from typing import Any

from fastapi import status


class APIError(Exception):
    """A client-facing failure with a stable machine-readable code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.data = data
        self.headers = headers

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.data is not None:
            body["data"] = self.data
        return body


def bad_request(code: str, message: str, data: dict | None = None) -> APIError:
    return APIError(status.HTTP_400_BAD_REQUEST, code, message, data)


def unauthorized(code: str, message: str, data: dict | None = None) -> APIError:
    return APIError(status.HTTP_401_UNAUTHORIZED, code, message, data)


def not_found(code: str, message: str) -> APIError:
    return APIError(status.HTTP_404_NOT_FOUND, code, message)
