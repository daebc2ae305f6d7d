"""
Access Gate

Authentication happens outside the ledger engine. The engine only needs a
stable user identity per request, or None when the caller could not be
authenticated.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional


class AccessGate(ABC):
    """Resolves a request context to a user identity."""

    @abstractmethod
    def authenticate(self, request_context: Any) -> Optional[str]:
        """
        Return the caller's stable user identity, or None if the
        request is not authenticated.
        """
        pass


class StaticAccessGate(AccessGate):
    """Treats every request as coming from one fixed identity (scripts, tests)."""

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def authenticate(self, request_context: Any) -> Optional[str]:
        return self._user_id


class TokenAccessGate(AccessGate):
    """
    Looks up a bearer token issued by an upstream identity provider.

    The request context is expected to be a mapping with an
    `authorization` entry of the form "Bearer <token>".
    """

    def __init__(self, tokens: Mapping[str, str]):
        self._tokens = dict(tokens)

    def authenticate(self, request_context: Any) -> Optional[str]:
        if not isinstance(request_context, Mapping):
            return None

        header = request_context.get("authorization") or ""
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return self._tokens.get(token.strip())
