from typing import Optional, Protocol

from fastapi import Request

from leanab.core.settings import config_settings


class IdentityProvider(Protocol):
    def get_user_id(self) -> Optional[str]:
        """The current caller's opaque user id, or None when logged out."""
        ...


class StaticIdentityProvider:
    """Always reports the same user; useful for scripts and jobs acting for one user."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    def get_user_id(self) -> Optional[str]:
        return self.user_id


class HeaderIdentityProvider:
    """Reads the user id from a request header set by the fronting web application."""

    def __init__(self, request: Request, header_name: str):
        self.request = request
        self.header_name = header_name

    def get_user_id(self) -> Optional[str]:
        user_id = self.request.headers.get(self.header_name, "").strip()
        return user_id or None


def get_identity(request: Request) -> IdentityProvider:
    """FastAPI dependency; override it to plug in a session- or token-based identity."""
    return HeaderIdentityProvider(request, config_settings.USER_ID_HEADER)
