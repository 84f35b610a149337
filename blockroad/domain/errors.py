from __future__ import annotations


class ChainError(Exception):
    """Base class for chain accessor failures."""


class NetworkError(ChainError):
    """Transport or HTTP failure talking to the upstream provider."""


class AuthError(ChainError):
    """Credential missing or rejected."""


class NotFoundError(ChainError):
    """Height not yet produced or unknown."""


class MalformedResponseError(ChainError):
    """Upstream returned a shape that cannot be classified."""
