"""
SQL Repository Support

Shared pieces for the SQLAlchemy-backed repositories: the repository error
type and a base class that lazily binds to the application session factory.
"""

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from thinkpro.common.logger import get_logger
from thinkpro.database.init_db import get_session_factory

logger = get_logger(__name__)


class RepositoryError(Exception):
    """Custom exception for repository layer errors."""

    log_level = logging.ERROR

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception
        logger.log(self.log_level, f"{type(self).__name__}: {message}" + (f" - Original: {original_exception}" if original_exception else ""))


class SqlRepository:
    """
    Base class for repositories that open one session per operation.

    Args:
        session_factory: Optional factory; defaults to the global one created
            by ``initialize_database``
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    @property
    def async_session(self) -> sessionmaker:
        """Get the async session factory, resolving the global one if necessary."""
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory
