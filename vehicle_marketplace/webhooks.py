"""
Webhook system for sending marketplace event notifications.

Allows external systems (notification delivery, payment collection) to
subscribe to order and booking events. Delivery is fire-and-forget: it runs
after the response is sent and failures are only logged.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder

from . import config

logger = logging.getLogger(__name__)


async def send_webhook(event_type: str, data: Dict[str, Any]) -> None:
    """
    Send webhook notifications to all registered URLs.

    Args:
        event_type: Type of event (e.g., "order.created", "booking.status_changed")
        data: Event data payload
    """
    if not config.WEBHOOK_URLS:
        return

    payload = {
        "event": event_type,
        "data": jsonable_encoder(data),
        "timestamp": datetime.utcnow().isoformat(),
    }

    async with httpx.AsyncClient(timeout=config.WEBHOOK_TIMEOUT) as client:
        tasks = [send_single_webhook(client, url, payload) for url in config.WEBHOOK_URLS]
        # Send all webhooks concurrently
        await asyncio.gather(*tasks, return_exceptions=True)


async def send_single_webhook(client: httpx.AsyncClient, url: str, payload: Dict[str, Any]) -> None:
    """Send a webhook to a single URL."""
    try:
        response = await client.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"}
        )

        if response.status_code >= 400:
            logger.warning(f"Webhook failed for {url}: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Webhook error for {url}: {str(e)}")


def _schedule(background_tasks: Optional[BackgroundTasks], event_type: str, data: Dict[str, Any]) -> None:
    if background_tasks is None or not config.WEBHOOK_URLS:
        return
    background_tasks.add_task(send_webhook, event_type, data)


def notify_order_created(background_tasks: Optional[BackgroundTasks], order) -> None:
    """Notify that a merchant order was created at checkout."""
    data = {
        "order_id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "merchant_id": order.merchant_id,
        "total_amount": str(order.total_amount),
    }
    _schedule(background_tasks, "order.created", data)


def notify_order_status_changed(
    background_tasks: Optional[BackgroundTasks], order_id: str, old_status: str, new_status: str
) -> None:
    """Notify that an order status changed."""
    data = {
        "order_id": order_id,
        "old_status": old_status,
        "new_status": new_status
    }
    _schedule(background_tasks, "order.status_changed", data)


def notify_booking_status_changed(
    background_tasks: Optional[BackgroundTasks], domain: str, booking_id: str, new_status: str
) -> None:
    """Notify that a booking (service, cleaning, rental or RSA) changed status."""
    data = {
        "domain": domain,
        "booking_id": booking_id,
        "new_status": new_status,
    }
    _schedule(background_tasks, f"{domain}.status_changed", data)


def notify_payment_succeeded(
    background_tasks: Optional[BackgroundTasks], payment_id: str, payment_type: str, reference_id: str
) -> None:
    data = {
        "payment_id": payment_id,
        "payment_type": payment_type,
        "reference_id": reference_id,
    }
    _schedule(background_tasks, "payment.succeeded", data)


def notify_notification_created(background_tasks: Optional[BackgroundTasks], notification) -> None:
    """Hand an email or SMS notification to the delivery gateway."""
    data = {
        "notification_id": notification.id,
        "user_id": notification.user_id,
        "channel": notification.channel,
        "title": notification.title,
        "message": notification.message,
    }
    _schedule(background_tasks, f"notification.{notification.channel}", data)
