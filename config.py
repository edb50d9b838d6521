import logging
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rental.db")

# Fallback operator number for the WhatsApp handoff (international format, no +)
OPERATOR_WHATSAPP = os.getenv("OPERATOR_WHATSAPP", "254712821098")

# When set, invoices are rendered by the remote function instead of in process
INVOICE_SERVICE_URL = os.getenv("INVOICE_SERVICE_URL")
INVOICE_TIMEOUT = float(os.getenv("INVOICE_TIMEOUT", "30"))
INVOICE_BRAND = os.getenv("INVOICE_BRAND", "ELITE CAR RENTALS")

MIN_PHONE_DIGITS = int(os.getenv("MIN_PHONE_DIGITS", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging():
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
