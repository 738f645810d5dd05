"""
FastAPI dependencies for MoodPulse.

Services are built once at startup from the Settings config structs and
handed to routers through the getters below.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.ai import AIProvider, create_ai_provider
from common.utils.exceptions import ConfigurationError, ServiceUnavailableException
from moodpulse.checkin.services.checkin_service import CheckInService
from moodpulse.checkin.services.signal_extractor import SignalExtractor
from moodpulse.config import Settings
from moodpulse.insights.services.alert_store import AlertStore
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.insight_synthesizer import InsightSynthesizer
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.messaging.services.carrier_client import CarrierClient
from moodpulse.messaging.services.delivery_log import DeliveryLogService
from moodpulse.messaging.services.dispatcher import BulkDispatcher
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.workers.task_queue import BackgroundTaskQueue

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

_settings: Optional[Settings] = None

# Check-in
_checkin_service: Optional[CheckInService] = None
_signal_extractor: Optional[SignalExtractor] = None

# Insights
_detector: Optional[RiskTrendDetector] = None
_ai_provider: Optional[AIProvider] = None
_synthesizer: Optional[InsightSynthesizer] = None
_insight_store: Optional[InsightStore] = None
_alert_store: Optional[AlertStore] = None

# Messaging
_delivery_log: Optional[DeliveryLogService] = None
_carrier_client: Optional[CarrierClient] = None
_carrier_error: Optional[ConfigurationError] = None
_dispatcher: Optional[BulkDispatcher] = None
_followup_queue: Optional[BackgroundTaskQueue] = None

# Organization
_employee_directory: Optional[EmployeeDirectory] = None


# ─────────────────────────────────────────────────────────────────
# Initialization functions
# ─────────────────────────────────────────────────────────────────

def init_checkin_services(db: AsyncIOMotorDatabase) -> None:
    """Initialize check-in services."""
    global _checkin_service, _signal_extractor

    _checkin_service = CheckInService(db=db)
    _signal_extractor = SignalExtractor()


def init_insight_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize insight services.

    Without a usable language-model configuration the synthesizer is built
    disabled, so generation runs the rules only and reports a warning.
    """
    global _detector, _ai_provider, _synthesizer, _insight_store, _alert_store

    _detector = RiskTrendDetector(window_days=settings.INSIGHT_LOOKBACK_DAYS)
    _insight_store = InsightStore(db=db, dedup_hours=settings.INSIGHT_DEDUP_HOURS)
    _alert_store = AlertStore(db=db, dedup_hours=settings.INSIGHT_DEDUP_HOURS)

    llm = settings.llm_config()
    try:
        _ai_provider = create_ai_provider(
            provider=llm.provider,
            api_key=llm.api_key,
            model=llm.model,
            timeout=llm.timeout_seconds,
            base_url=llm.base_url,
            max_retries=0,
        )
        logger.info(f"AI provider configured: {_ai_provider.name} ({llm.model})")
    except ConfigurationError as e:
        _ai_provider = None
        logger.warning(f"{e} - insight generation will be rule-based only")

    _synthesizer = InsightSynthesizer(
        ai_provider=_ai_provider,
        timeout_seconds=llm.timeout_seconds,
    )


def init_messaging_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize messaging services.

    A missing carrier configuration is kept and reported when a dispatch
    endpoint is called; webhook acknowledgments are skipped meanwhile.
    """
    global _delivery_log, _carrier_client, _carrier_error, _dispatcher, _followup_queue

    _delivery_log = DeliveryLogService(db=db)
    _followup_queue = BackgroundTaskQueue(
        max_size=settings.FOLLOWUP_QUEUE_SIZE,
        workers=settings.FOLLOWUP_WORKERS,
    )

    dispatch_config = settings.dispatch_config()
    try:
        _carrier_client = CarrierClient(
            settings.carrier_config(),
            timeout=dispatch_config.send_timeout_seconds,
        )
        _carrier_error = None
    except ConfigurationError as e:
        _carrier_client = None
        _carrier_error = e
        logger.warning(str(e))

    _dispatcher = None
    if _carrier_client is not None:
        _dispatcher = BulkDispatcher(
            carrier=_carrier_client,
            delivery_log=_delivery_log,
            config=dispatch_config,
        )


def init_organization_services(db: AsyncIOMotorDatabase) -> None:
    """Initialize organization services."""
    global _employee_directory

    _employee_directory = EmployeeDirectory(db=db)


def init_all_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize all services at application startup.

    Args:
        db: MongoDB database connection
        settings: Settings read once at process start
    """
    global _settings
    _settings = settings

    init_checkin_services(db)
    init_insight_services(db, settings)
    init_messaging_services(db, settings)
    init_organization_services(db)


async def ensure_all_indexes() -> None:
    """Create collection indexes for every store."""
    await get_checkin_service().ensure_indexes()
    await get_insight_store().ensure_indexes()
    await get_alert_store().ensure_indexes()
    await get_delivery_log().ensure_indexes()


async def close_all_services() -> None:
    """Release HTTP clients held by services."""
    if _carrier_client is not None:
        await _carrier_client.aclose()
    if _ai_provider is not None:
        try:
            await _ai_provider.close()
        except Exception as e:
            logger.warning(f"Error closing AI provider: {e}")


# ─────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────

def get_app_settings() -> Settings:
    """Get settings instance."""
    if _settings is None:
        raise RuntimeError("Services not initialized.")
    return _settings


# ─────────────────────────────────────────────────────────────────
# Check-in getters
# ─────────────────────────────────────────────────────────────────

def get_checkin_service() -> CheckInService:
    """Get check-in service instance."""
    if _checkin_service is None:
        raise RuntimeError("Check-in services not initialized.")
    return _checkin_service


def get_signal_extractor() -> SignalExtractor:
    """Get signal extractor instance."""
    if _signal_extractor is None:
        raise RuntimeError("Check-in services not initialized.")
    return _signal_extractor


# ─────────────────────────────────────────────────────────────────
# Insight getters
# ─────────────────────────────────────────────────────────────────

def get_trend_detector() -> RiskTrendDetector:
    """Get risk & trend detector instance."""
    if _detector is None:
        raise RuntimeError("Insight services not initialized.")
    return _detector


def get_insight_synthesizer() -> InsightSynthesizer:
    """Get insight synthesizer instance."""
    if _synthesizer is None:
        raise RuntimeError("Insight services not initialized.")
    return _synthesizer


def get_insight_store() -> InsightStore:
    """Get insight store instance."""
    if _insight_store is None:
        raise RuntimeError("Insight services not initialized.")
    return _insight_store


def get_alert_store() -> AlertStore:
    """Get alert store instance."""
    if _alert_store is None:
        raise RuntimeError("Insight services not initialized.")
    return _alert_store


# ─────────────────────────────────────────────────────────────────
# Messaging getters
# ─────────────────────────────────────────────────────────────────

def get_delivery_log() -> DeliveryLogService:
    """Get delivery log instance."""
    if _delivery_log is None:
        raise RuntimeError("Messaging services not initialized.")
    return _delivery_log


def get_optional_carrier_client() -> Optional[CarrierClient]:
    """Get carrier client, or None when the carrier is not configured."""
    if _delivery_log is None:
        raise RuntimeError("Messaging services not initialized.")
    return _carrier_client


def get_followup_queue() -> BackgroundTaskQueue:
    """Get follow-up queue instance."""
    if _followup_queue is None:
        raise RuntimeError("Messaging services not initialized.")
    return _followup_queue


def get_dispatcher() -> BulkDispatcher:
    """
    Get bulk dispatcher instance.

    Raises:
        ServiceUnavailableException: Carrier is not configured
    """
    if _delivery_log is None:
        raise RuntimeError("Messaging services not initialized.")
    if _dispatcher is None:
        raise ServiceUnavailableException(
            message="Messaging carrier is not configured",
            code="CARRIER_NOT_CONFIGURED",
            details=_carrier_error.problems if _carrier_error else None,
        )
    return _dispatcher


# ─────────────────────────────────────────────────────────────────
# Organization getters
# ─────────────────────────────────────────────────────────────────

def get_employee_directory() -> EmployeeDirectory:
    """Get employee directory instance."""
    if _employee_directory is None:
        raise RuntimeError("Organization services not initialized.")
    return _employee_directory
