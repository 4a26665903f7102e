# Overview: Low-stock alert delivery over a Resend-compatible e-mail API.

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape

import httpx

from ..errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowStockNotice:
    product_id: int
    product_name: str
    sku: str
    current_stock: int
    min_stock_level: int
    supplier_name: str
    supplier_email: str

    @property
    def subject(self) -> str:
        return f"Low Stock Alert: {self.product_name} ({self.sku})"

    def to_html(self) -> str:
        rows = [
            ("Product", self.product_name),
            ("SKU", self.sku),
            ("Current Stock", self.current_stock),
            ("Minimum Stock Level", self.min_stock_level),
            ("Supplier", self.supplier_name),
            ("Supplier Email", self.supplier_email),
        ]
        cells = "".join(
            f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(str(value))}</td></tr>"
            for label, value in rows
        )
        return (
            "<h2>Low Stock Alert</h2>"
            "<p>The following product is below its minimum stock level:</p>"
            f"<table border=\"1\" cellpadding=\"6\" cellspacing=\"0\">{cells}</table>"
            "<p>Please reorder soon.</p>"
        )


class EmailNotifier:
    """
    POST {api_url} with {"from", "to", "subject", "html"} and a bearer API key.

    send() raises NotificationError on any failure; callers decide whether
    that aborts anything.
    """

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str | None,
        sender: str | None,
        recipient: str | None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport | None = None) -> "EmailNotifier":
        return cls(
            api_url=config.get("EMAIL_API_URL", "https://api.resend.com/emails"),
            api_key=config.get("RESEND_API_KEY"),
            sender=config.get("ALERT_EMAIL_FROM"),
            recipient=config.get("ALERT_EMAIL_TO"),
            timeout=float(config.get("EMAIL_TIMEOUT_SECONDS", 10)),
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender and self.recipient)

    def send(self, notice: LowStockNotice) -> None:
        if not self.configured:
            raise NotificationError("Email notifications are not configured")

        body = {
            "from": self.sender,
            "to": [self.recipient],
            "subject": notice.subject,
            "html": notice.to_html(),
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email API request failed: {exc.__class__.__name__}")

        if not response.is_success:
            raise NotificationError(f"Email API error: {response.status_code}")

        logger.info("Low stock alert sent for %s", notice.sku)
