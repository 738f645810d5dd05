"""Messaging services."""

from moodpulse.messaging.services.carrier_client import CarrierClient, CarrierError
from moodpulse.messaging.services.delivery_log import DeliveryLogService
from moodpulse.messaging.services.dispatcher import BulkDispatcher

__all__ = [
    "CarrierClient",
    "CarrierError",
    "DeliveryLogService",
    "BulkDispatcher",
]
