from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def normalize_database_url(url: str) -> str:
    return "postgresql://" + url[len("postgres://"):] if url.startswith("postgres://") else url


DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL", "sqlite:///./todo.db"))
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", str(7 * 24 * 3600)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

API_PREFIX = os.getenv("API_PREFIX", "/api")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DEFAULT_LIST_NAME = "My Day"
LIST_NAME_MAX = 255
TASK_TITLE_MAX = 500
USERNAME_MIN = 3
USERNAME_MAX = 255
PASSWORD_MIN = 6
