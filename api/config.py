"""アプリケーション設定"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).parent.parent

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{BASE_DIR / 'data' / 'airports.db'}"
)

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# development のときだけエラー詳細とSQL実行時間を出す
APP_ENV = os.getenv("APP_ENV", "production")
IS_DEVELOPMENT = APP_ENV == "development"

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "0"))
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "2"))
QUERY_TIMEOUT = float(os.getenv("QUERY_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AIRPORTS_CSV_URL = os.getenv(
    "AIRPORTS_CSV_URL",
    "https://davidmegginson.github.io/ourairports-data/airports.csv",
)
AIRPORTS_CSV_PATH = BASE_DIR / "data" / "airports.csv"
