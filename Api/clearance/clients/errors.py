import httpx


class CollaboratorError(Exception):
    """An external service call failed or its outcome is unknown."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def from_http_error(cls, error: httpx.HTTPError, default: str) -> "CollaboratorError":
        if isinstance(error, httpx.HTTPStatusError):
            return cls(error_message(error, default), error.response.status_code)
        return cls(default)


def error_message(error: httpx.HTTPError, default: str) -> str:
    """Prefer the remote service's own message over a generic fallback."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            return default
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or default
    return default
