"""
Acknowledgement returned to the payment gateway.

The inbound payload is read as raw bytes so the signature can be checked
over exactly what was sent; only the response has a schema.
"""

from typing import Optional

from pydantic import BaseModel


class WebhookAck(BaseModel):
    status: str = "ok"
    event: Optional[str] = None
    result: str
