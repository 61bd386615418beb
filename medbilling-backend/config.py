# config.py
import os
import logging
from dotenv import load_dotenv

# Load .env into environment variables
load_dotenv()

# JWT settings
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PROD")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))

# Notes database: async URL for queries, sync URL for table creation
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./notes.db")
DATABASE_URL1 = os.getenv("DATABASE_URL1", "sqlite:///./notes.db")

# Ensure DATABASE_URL is set
if not DATABASE_URL or not DATABASE_URL1:
    raise RuntimeError("DATABASE_URL and DATABASE_URL1 is not set in your environment")

# Billing
TAX_RATE = float(os.getenv("TAX_RATE", "0.10"))
SEED_SAMPLE_DATA = os.getenv("SEED_SAMPLE_DATA", "true").lower() in ("1", "true", "yes")

# Stock alerts
LOW_STOCK_ALERTS = os.getenv("LOW_STOCK_ALERTS", "false").lower() in ("1", "true", "yes")
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
MANAGER_PHONE_NUMBER = os.getenv("MANAGER_PHONE_NUMBER")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
