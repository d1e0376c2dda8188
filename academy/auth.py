"""
Admin gate for privileged endpoints.

Identity comes from Supabase Auth (the caller's access token). The role is
looked up server-side in user_roles with the service-role store; role claims
sent by the client are never trusted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from supabase import AuthError, create_client

from academy.config import get_settings
from academy.errors import ForbiddenError, MisconfiguredError, StoreError, UnauthenticatedError
from academy.sync.academy_store import AcademyStore

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """A caller whose token was accepted by Supabase Auth."""

    id: str
    email: Optional[str] = None
    roles: list[str] = field(default_factory=list)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header.

    Raises:
        UnauthenticatedError: If the header is missing or not a bearer token
    """
    if not authorization:
        logger.warning("No authorization header provided")
        raise UnauthenticatedError("Not authorized")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        logger.warning("Malformed authorization header")
        raise UnauthenticatedError("Not authorized")
    return token


class AdminVerifier:
    """Checks that a bearer token belongs to a user holding the admin role."""

    def __init__(
        self,
        store: AcademyStore,
        auth_client: Optional[Any] = None,
        admin_role: Optional[str] = None,
    ):
        """
        Initialize the verifier.

        Args:
            store: Service-role store used for the role lookup
            auth_client: Supabase auth client (anon-key client's `.auth` if not provided)
            admin_role: Role name that grants access (or from settings)
        """
        self.store = store
        self._auth = auth_client
        self.admin_role = admin_role or get_settings().admin_role

    @property
    def auth(self) -> Any:
        """Lazy-load the Supabase auth client."""
        if self._auth is None:
            settings = get_settings()
            if not settings.supabase_url or not settings.supabase_anon_key:
                raise MisconfiguredError("Supabase auth not configured")
            self._auth = create_client(settings.supabase_url, settings.supabase_anon_key).auth
        return self._auth

    def authenticate(self, token: str) -> AuthenticatedUser:
        """
        Resolve the user behind an access token.

        Raises:
            UnauthenticatedError: If Supabase Auth rejects the token
        """
        try:
            response = self.auth.get_user(token)
        except AuthError as e:
            logger.warning(f"Failed to get user: {e}")
            raise UnauthenticatedError("User not authenticated") from e

        user = getattr(response, "user", None)
        if user is None:
            logger.warning("Token did not resolve to a user")
            raise UnauthenticatedError("User not authenticated")

        return AuthenticatedUser(id=str(user.id), email=getattr(user, "email", None))

    def verify(self, token: str) -> AuthenticatedUser:
        """
        Authenticate the token and require the admin role.

        Raises:
            UnauthenticatedError: Invalid token
            ForbiddenError: Valid token, but the user is not an admin
        """
        user = self.authenticate(token)

        try:
            user.roles = self.store.get_user_roles(user.id)
        except StoreError as e:
            logger.error(f"Role lookup failed for user {user.id}: {e}")
            raise ForbiddenError("Only administrators can perform this action") from e

        if self.admin_role not in user.roles:
            logger.warning(f"User {user.id} is not admin (roles: {user.roles})")
            raise ForbiddenError("Only administrators can perform this action")

        return user
