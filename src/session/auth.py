from __future__ import annotations

from abc import ABC, abstractmethod


class AuthContext(ABC):
    """Answers whether the current user may mutate their data.

    Consulted before every task mutation; session handling itself lives outside the core.
    """

    @property
    @abstractmethod
    def is_authenticated(self) -> bool:
        ...


class StaticAuthContext(AuthContext):
    """Fixed authentication state (single-user gateway, tests)."""

    def __init__(self, authenticated: bool = True) -> None:
        self._authenticated = authenticated

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated
