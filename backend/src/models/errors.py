"""Provider error raised by the HTTP layer and converted at component boundaries"""

from typing import Optional

from shared.models.enums import ErrorKind

# Status returned by the API when a typed error reaches a router
HTTP_STATUS_BY_KIND = {
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.UNAUTHORIZED: 502,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.UNAVAILABLE: 502,
    ErrorKind.ALREADY_REPORTED: 409,
    ErrorKind.NOT_FOUND: 404,
}


class ProviderError(Exception):
    """Places provider call failed"""

    def __init__(self, kind: ErrorKind, message: str, provider_status: Optional[str] = None):
        self.kind = kind
        self.message = message
        self.provider_status = provider_status
        super().__init__(message)


def http_status_for(kind: ErrorKind) -> int:
    return HTTP_STATUS_BY_KIND.get(kind, 500)
