#!/usr/bin/env python3
"""
Database initialization script.

Creates every table for the configured DATABASE_URL and, optionally, loads
question bank seed data from a YAML file.

Usage:
    python -m thinkpro.scripts.init_db [--questions seed.yaml]
"""

import argparse
import asyncio
import sys

import yaml

from thinkpro.common.logger import get_logger
from thinkpro.config import settings
from thinkpro.database.init_db import close_database, create_all_tables, initialize_database
from thinkpro.domain.questions.model import Question
from thinkpro.domain.questions.sql_repository import SqlQuestionRepository

logger = get_logger(__name__)


async def seed_questions(path: str) -> int:
    """Load questions from a YAML file with a top-level ``questions`` list."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    repository = SqlQuestionRepository()
    count = 0
    for entry in data.get("questions", []):
        await repository.save(Question.from_dict(entry))
        count += 1
    return count


async def async_main(questions_file: str = None):
    """Initialize the database."""
    try:
        engine = await initialize_database(
            database_url=settings.DATABASE_URL,
            echo=settings.SQL_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT
        )
        await create_all_tables(engine)

        if questions_file:
            count = await seed_questions(questions_file)
            logger.info(f"Seeded {count} questions from {questions_file}")

        logger.info("Database initialized successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        sys.exit(1)
    finally:
        await close_database()


def main():
    parser = argparse.ArgumentParser(description="Create the ThinkPro assessment schema")
    parser.add_argument("--questions", help="YAML file with question bank seed data")
    args = parser.parse_args()
    asyncio.run(async_main(args.questions))


if __name__ == "__main__":
    main()
