"""Sources for the bearer token attached to backend requests.

The session store lives outside this service, so callers hand a provider to
the backend client instead of the client reading a global token.
"""
from typing import Optional, Protocol


class CredentialProvider(Protocol):
    def get_token(self) -> Optional[str]:
        ...

    def invalidate(self) -> None:
        ...


def clean_token(raw: Optional[str]) -> Optional[str]:
    """Strip whitespace and surrounding quotes left by JSON-encoded session values."""
    if raw is None:
        return None
    token = raw.strip().strip('"').strip()
    return token or None


class StaticCredentialProvider:
    """Holds a single token until it is invalidated."""

    def __init__(self, token: Optional[str] = None):
        self._token = clean_token(token)

    def get_token(self) -> Optional[str]:
        return self._token

    def invalidate(self) -> None:
        self._token = None


class AuthorizationHeaderProvider(StaticCredentialProvider):
    """Forwards the token from an incoming ``Authorization`` header."""

    def __init__(self, header_value: Optional[str]):
        token = None
        if header_value:
            scheme, _, value = header_value.strip().partition(" ")
            token = value if scheme.lower() == "bearer" else header_value
        super().__init__(token)


class AnonymousCredentialProvider:
    """Provider for public calls made without a session."""

    def get_token(self) -> Optional[str]:
        return None

    def invalidate(self) -> None:
        pass
