import os

from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

if DB_HOST:
    DATABASE_URL = (
        f"postgresql+asyncpg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )
else:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./shortlinks.db")

SECRET = os.getenv("SECRET")
if not SECRET:
    raise RuntimeError("SECRET environment variable must be set")
# import os, base64
# print(base64.urlsafe_b64encode(os.urandom(32)).decode())
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", "3600"))

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
SUMMARY_CACHE_EXPIRE = int(os.getenv("SUMMARY_CACHE_EXPIRE", "60"))

BASE_URL = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")

CODE_LENGTH = int(os.getenv("CODE_LENGTH", "7"))
CODE_MAX_ATTEMPTS = int(os.getenv("CODE_MAX_ATTEMPTS", "5"))

GEOIP_DB_PATH = os.getenv("GEOIP_DB_PATH")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
