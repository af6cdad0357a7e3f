from setuptools import find_packages, setup

setup(
    name="pg_redis_sync",
    version="0.1.0",
    description="Incremental write-behind sync of PostgreSQL rows into Redis",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "asyncpg",
        "python-dotenv",
        "redis>=5.0.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-cov",
        ],
    },
    entry_points={
        "console_scripts": [
            "pg-redis-sync=pg_redis_sync.main:run",
        ],
    },
    python_requires=">=3.10",
)
