# alerts.py
import logging
from typing import Iterable, Optional

from requests.exceptions import RequestException
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from config import MANAGER_PHONE_NUMBER, TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_client() -> Client:
    global _client
    if _client is None:
        _client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
    return _client


def low_stock_message(names: Iterable[str]) -> str:
    return f"⚠️ Low stock alert for: {', '.join(names)}"


def send_stock_alert(message: str) -> bool:
    """Text the manager; returns False when Twilio rejects or never receives the message."""
    try:
        get_client().messages.create(
            body=message,
            from_=TWILIO_PHONE_NUMBER,
            to=MANAGER_PHONE_NUMBER,
        )
    except (TwilioException, RequestException):
        logger.exception("Could not send stock alert")
        return False
    logger.info("Stock alert sent to %s", MANAGER_PHONE_NUMBER)
    return True
