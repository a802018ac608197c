"""
Runtime configuration for the pricing service.
Values come from the environment (optionally a .env file).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')
load_dotenv()

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv(
    'POSTGRES_URL',
    'sqlite+aiosqlite:///./package_pricing.db'  # SQLite for local dev only
)
DATABASE_ECHO = os.getenv('DATABASE_ECHO', 'false').lower() == 'true'

# Currency used when a package row carries none
DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'USD').upper()

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')


def _flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Adjustment pipeline step toggles
PRICING_ENABLE_GROUP = _flag('PRICING_ENABLE_GROUP')
PRICING_ENABLE_SEASONAL = _flag('PRICING_ENABLE_SEASONAL')
PRICING_ENABLE_TIME_BASED = _flag('PRICING_ENABLE_TIME_BASED')
PRICING_ENABLE_DEPARTURE = _flag('PRICING_ENABLE_DEPARTURE')
PRICING_ENABLE_PROMOTION = _flag('PRICING_ENABLE_PROMOTION')
