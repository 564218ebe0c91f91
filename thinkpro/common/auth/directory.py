"""
Identity Directory

The user/role directory is owned by an upstream service. The assessment
core only needs to turn an authenticated user id into an Actor; this module
defines that narrow interface and an in-memory implementation that can be
seeded from a YAML fixture for development.
"""

import abc
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from thinkpro.common.auth.user import Actor
from thinkpro.common.logger import get_logger

logger = get_logger(__name__)


class IdentityDirectory(abc.ABC):
    """Resolves user ids to actors."""

    @abc.abstractmethod
    async def get_actor(self, user_id: str) -> Optional[Actor]:
        """
        Look up the actor for a user id.

        Args:
            user_id: The authenticated user id

        Returns:
            The Actor if known, None otherwise
        """
        pass


class InMemoryIdentityDirectory(IdentityDirectory):
    """Dictionary-backed directory for development and tests."""

    def __init__(self, actors: Optional[Iterable[Actor]] = None):
        self._actors: Dict[str, Actor] = {}
        for actor in actors or []:
            self.add(actor)

    async def get_actor(self, user_id: str) -> Optional[Actor]:
        return self._actors.get(user_id)

    def add(self, actor: Actor) -> Actor:
        self._actors[actor.id] = actor
        return actor

    def get_all(self) -> List[Actor]:
        return list(self._actors.values())

    @classmethod
    def from_yaml(cls, path: str) -> 'InMemoryIdentityDirectory':
        """
        Build a directory from a YAML file with a top-level ``users`` list.

        Args:
            path: Path to the fixture file

        Returns:
            A populated directory (empty if the file does not exist)
        """
        fixture = Path(path)
        if not fixture.exists():
            logger.warning(f"Identity file not found: {fixture}")
            return cls()

        with open(fixture, "r") as f:
            data = yaml.safe_load(f) or {}

        users = data.get("users", []) if isinstance(data, dict) else []
        directory = cls(Actor.from_dict(entry) for entry in users)
        logger.info(f"Loaded {len(users)} identities from {fixture}")
        return directory
