"""Webhook acknowledgement schemas."""

from typing import Optional

from .base import StandardizedModel


class WebhookAck(StandardizedModel):
    received: bool = True


class WebhookError(StandardizedModel):
    error: str
    code: Optional[str] = None
