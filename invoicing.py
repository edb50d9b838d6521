import base64
import logging
from datetime import date, datetime
from typing import Optional

import requests
from fpdf import FPDF
from pydantic import BaseModel, ConfigDict, Field

import config
from errors import InvoiceError
from lifecycle import rental_days

logger = logging.getLogger(__name__)


class InvoiceRequest(BaseModel):
    """Facts the invoice function needs; `pickup` / `return` on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    booking_id: str
    customer_name: str = "Customer"
    car_name: str = "Vehicle"
    total_days: int = Field(1, ge=1)
    amount: float = 0.0
    pickup_date: Optional[date] = Field(None, alias="pickup")
    return_date: Optional[date] = Field(None, alias="return")

    @classmethod
    def from_booking(cls, booking) -> "InvoiceRequest":
        customer = getattr(booking, "customer", None)
        car = getattr(booking, "car", None)
        return cls(
            booking_id=booking.id,
            customer_name=(customer.full_name if customer else None) or "Customer",
            car_name=(car.name if car else None) or "Vehicle",
            total_days=rental_days(booking.pickup_date, booking.return_date),
            amount=booking.total_price,
            pickup_date=booking.pickup_date,
            return_date=booking.return_date,
        )


def invoice_filename(booking_id: str) -> str:
    return f"Invoice_{booking_id[:8]}.pdf"


def render_invoice_pdf(req: InvoiceRequest, brand: str = None, issued: date = None) -> bytes:
    pdf = FPDF()
    pdf.add_page()

    # Header
    pdf.set_font("Helvetica", size=22)
    pdf.set_text_color(0, 0, 0)
    pdf.text(20, 20, brand or config.INVOICE_BRAND)
    pdf.set_line_width(0.5)
    pdf.line(20, 25, 190, 25)

    pdf.set_font("Helvetica", size=12)
    pdf.text(20, 35, f"Invoice ID: {req.booking_id[:8] or 'N/A'}")
    pdf.text(20, 42, f"Date: {(issued or datetime.now().date()).isoformat()}")

    pdf.set_font("Helvetica", "B", 12)
    pdf.text(20, 55, "BILL TO:")
    pdf.set_font("Helvetica", size=12)
    pdf.text(20, 62, req.customer_name or "Valued Customer")

    pdf.set_font("Helvetica", "B", 12)
    pdf.text(20, 80, "Description")
    pdf.text(100, 80, "Details")
    pdf.line(20, 82, 190, 82)

    pdf.set_font("Helvetica", size=12)
    pdf.text(20, 90, "Vehicle Name")
    pdf.text(100, 90, req.car_name or "Vehicle")
    pdf.text(20, 100, "Rental Duration")
    pdf.text(100, 100, f"{req.total_days or 1} Day(s)")
    if req.pickup_date and req.return_date:
        pdf.text(20, 108, "Rental Period")
        pdf.text(100, 108, f"{req.pickup_date.isoformat()} to {req.return_date.isoformat()}")

    pdf.set_font("Helvetica", "B", 12)
    pdf.text(20, 118, "Total Paid")
    pdf.set_text_color(16, 185, 129)
    pdf.text(100, 118, f"${req.amount:,.2f}")

    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", size=10)
    pdf.text(20, 140, "Payment Status: PAID")
    pdf.text(20, 150, f"Thank you for choosing {(brand or config.INVOICE_BRAND).title()}!")

    return bytes(pdf.output())


def generate_invoice(req: InvoiceRequest) -> dict:
    """
    The invoice function itself: render and return `{"pdf": <data URI>}`.
    Raises InvoiceError when rendering fails.
    """
    try:
        content = render_invoice_pdf(req)
    except Exception as e:
        logger.exception("PDF generation failed for booking %s", req.booking_id)
        raise InvoiceError(str(e)) from e
    encoded = base64.b64encode(content).decode("ascii")
    return {"pdf": f"data:application/pdf;filename=generated.pdf;base64,{encoded}"}


class InvoiceClient:
    """
    Calls the invoice function: over HTTP when a service URL is configured,
    in process otherwise.
    """

    def __init__(self, service_url: str = None, timeout: float = None):
        self.service_url = service_url if service_url is not None else config.INVOICE_SERVICE_URL
        self.timeout = timeout or config.INVOICE_TIMEOUT

    def generate(self, req: InvoiceRequest) -> dict:
        if not self.service_url:
            return generate_invoice(req)

        try:
            resp = requests.post(
                self.service_url,
                json=req.model_dump(mode="json", by_alias=True),
                timeout=self.timeout,
            )
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise InvoiceError(f"Invoice service unreachable: {e}") from e

        if not isinstance(data, dict):
            raise InvoiceError(f"Invoice service returned an unexpected payload ({resp.status_code})")
        if resp.status_code >= 400 or not data.get("pdf"):
            raise InvoiceError(data.get("error") or f"Invoice service returned {resp.status_code}")
        return {"pdf": data["pdf"]}
