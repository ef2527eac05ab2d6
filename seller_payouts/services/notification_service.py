"""
Payout Notification Service

Announces payout lifecycle events to downstream systems (seller
notifications, accounting) through an outbound webhook.

When PAYOUT_WEBHOOK_URL is not configured the event is only logged.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

import httpx

from seller_payouts.config import settings
from seller_payouts.schemas.commission import PayoutCompletedEvent


logger = logging.getLogger(__name__)


class PayoutEventType(str, Enum):
    """Outbound payout events."""
    PAYOUT_COMPLETED = "payout.completed"


class PayoutNotifier:
    """
    Delivers payout events to the configured webhook.

    Delivery errors are raised to the caller; PayoutStateMachine treats
    them as best-effort.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.PAYOUT_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.PAYOUT_WEBHOOK_TIMEOUT
        self.transport = transport

    async def payout_completed(self, event: PayoutCompletedEvent) -> Dict[str, Any]:
        """Announce a completed payout."""
        return await self._fire(
            PayoutEventType.PAYOUT_COMPLETED,
            event.model_dump(mode="json"),
        )

    async def _fire(self, event_type: PayoutEventType, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"[NOTIFICATION] {event_type.value}: {payload}")

        if not self.webhook_url:
            logger.debug(f"Payout webhook URL not configured for {event_type.value}, skipping")
            return {"skipped": True, "reason": "no_url_configured"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.webhook_url,
                json={"event": event_type.value, "data": payload},
                headers={
                    "X-Payout-Event": event_type.value,
                    "X-Payout-Timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
            response.raise_for_status()

        logger.info(f"Payout webhook {event_type.value} sent ({response.status_code})")
        return {"success": True, "status_code": response.status_code}
