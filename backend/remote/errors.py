from __future__ import annotations


class RemoteError(Exception):
    """
    Any failed call to the polygon service.

    `status` is the HTTP status for non-2xx responses and None when the
    request never got a response (connect error, timeout, ...).
    """

    def __init__(self, status: int | None, message: str, *, url: str | None = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.url = url

    def to_dict(self) -> dict[str, object]:
        return {"status": self.status, "message": self.message, "url": self.url}

    def __repr__(self) -> str:
        return f"RemoteError(status={self.status!r}, message={self.message!r})"
