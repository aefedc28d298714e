import os
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the package directory or parent directory
env_path = Path(__file__).parent / '.env'
if not env_path.exists():
    env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY

    # Document store
    STORE_BACKEND = os.getenv('STORE_BACKEND', 'mongo')
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'whoowes')
    MONGO_TIMEOUT_MS = int(os.getenv('MONGO_TIMEOUT_MS', '5000'))

    # Optimistic transactions
    TRANSACTION_MAX_ATTEMPTS = int(os.getenv('TRANSACTION_MAX_ATTEMPTS', '5'))
    TRANSACTION_RETRY_MAX_WAIT = float(os.getenv('TRANSACTION_RETRY_MAX_WAIT', '0.05'))

    # Balances within this distance of each other count as equal
    SETTLEMENT_TOLERANCE = Decimal(os.getenv('SETTLEMENT_TOLERANCE', '0.00'))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:5173,http://localhost:8080').split(',')
        if origin.strip()
    ]

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_JSON = _env_bool('LOG_JSON', True)


class TestConfig(Config):
    TESTING = True
    STORE_BACKEND = 'memory'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    TRANSACTION_MAX_ATTEMPTS = 5
    TRANSACTION_RETRY_MAX_WAIT = 0.0
    SETTLEMENT_TOLERANCE = Decimal('0.00')
    LOG_JSON = False
