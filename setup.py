from setuptools import setup, find_packages

setup(
    name="thinkpro-lms-backend",
    version="1.0.0",
    packages=find_packages(exclude=["thinkpro.tests", "thinkpro.tests.*"]),
    package_data={"thinkpro": ["alembic/*.py", "alembic/versions/*.py"]},
    install_requires=[
        "fastapi>=0.68.0,<0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=1.8.0,<2.0.0",
        "sqlalchemy>=1.4.0,<2.0.0",
        "alembic>=1.7.0",
        "python-dotenv>=0.19.0",
        "pyyaml>=5.4",
        "aiosqlite>=0.17.0",
        "asyncpg>=0.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.23.0,<0.28.0",
        ],
    },
    python_requires=">=3.8",
)
