"""
Database Configuration
Supports both PostgreSQL (production) and SQLite (development)
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Database configuration
DATABASE_TYPE = os.getenv("DATABASE_TYPE", "sqlite")  # 'sqlite' or 'postgresql'

# SQLite configuration (default for development)
SQLITE_DB_PATH = Path(os.getenv("SQLITE_DB_PATH", Path(__file__).parent.parent / "data" / "codelines.db"))

# PostgreSQL configuration (for production)
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "codelines")
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "")

# Echo SQL statements (debugging)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes", "on")


def get_database_url() -> str:
    """Get the database URL based on configuration"""
    # DATABASE_URL wins when set (hosted platforms, tests)
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    if DATABASE_TYPE == "postgresql":
        return f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
    else:
        # SQLite
        SQLITE_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{SQLITE_DB_PATH}"
