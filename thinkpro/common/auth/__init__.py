"""
Authentication Framework

Actor model, role to capability resolution and the FastAPI dependencies
that turn an upstream-authenticated request into an Actor.
"""

from thinkpro.common.auth.user import (
    Actor,
    Capability,
    StudentProfile,
    UserRole,
    resolve_capabilities
)
from thinkpro.common.auth.directory import IdentityDirectory, InMemoryIdentityDirectory
from thinkpro.common.auth.dependencies import (
    get_current_actor,
    get_current_user_id,
    get_identity_directory,
    require_capability,
    set_identity_directory
)

__all__ = [
    'Actor',
    'Capability',
    'StudentProfile',
    'UserRole',
    'resolve_capabilities',
    'IdentityDirectory',
    'InMemoryIdentityDirectory',
    'get_current_actor',
    'get_current_user_id',
    'get_identity_directory',
    'require_capability',
    'set_identity_directory',
]
