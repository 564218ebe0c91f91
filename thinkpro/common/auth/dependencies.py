"""
Authentication dependencies for the ThinkPro assessment API.

Token verification happens upstream; the bearer token that reaches this
service is the already-resolved user id.
"""

from typing import Callable, Optional

from fastapi import Depends, Header

from thinkpro.common.auth.directory import IdentityDirectory, InMemoryIdentityDirectory
from thinkpro.common.auth.user import Actor, Capability
from thinkpro.common.error_handling import AuthenticationError
from thinkpro.common.logger import get_logger
from thinkpro.config import settings

logger = get_logger(__name__)

_directory: Optional[IdentityDirectory] = None


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Get the current user ID from the authorization header.

    Args:
        authorization: Authorization header value

    Returns:
        User ID string

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Invalid authentication scheme")
    return token


def get_identity_directory() -> IdentityDirectory:
    """Return the process-wide identity directory, loading it on first use."""
    global _directory
    if _directory is None:
        if settings.IDENTITY_FILE:
            _directory = InMemoryIdentityDirectory.from_yaml(settings.IDENTITY_FILE)
        else:
            _directory = InMemoryIdentityDirectory()
    return _directory


def set_identity_directory(directory: Optional[IdentityDirectory]) -> None:
    global _directory
    _directory = directory


async def get_current_actor(
    user_id: str = Depends(get_current_user_id),
    directory: IdentityDirectory = Depends(get_identity_directory)
) -> Actor:
    """
    Resolve the authenticated user into an Actor.

    Raises:
        AuthenticationError: If the user is unknown to the directory
    """
    actor = await directory.get_actor(user_id)
    if actor is None:
        logger.warning(f"Unknown user id presented: {user_id}")
        raise AuthenticationError("User not found")
    return actor


def require_capability(capability: Capability, message: Optional[str] = None) -> Callable:
    """
    Build a dependency that yields the current actor after asserting a capability.

    Args:
        capability: The capability the endpoint needs
        message: Optional denial message

    Returns:
        A FastAPI dependency
    """
    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        actor.require(capability, message)
        return actor

    return dependency
