"""
Background Market Data Refresh Thread

Refreshes the gold price and exchange rate caches in-process on a fixed
schedule, independent of request traffic. Started once from create_app unless
MARKET_DATA_BACKGROUND_REFRESH=0.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.services.config import get_refresh_interval_seconds

logger = logging.getLogger('background_refresh')

# Global to track if refresh thread is running
_refresh_thread: Optional[threading.Thread] = None
_stop_event = threading.Event()


def start_background_refresh(service, interval_seconds: Optional[int] = None):
    """Start the background refresh thread if not already running.

    Args:
        service: PricingService whose caches should be kept warm.
        interval_seconds: Override for MARKET_DATA_REFRESH_SECONDS.
    """
    global _refresh_thread

    if _refresh_thread is not None and _refresh_thread.is_alive():
        logger.info("Background refresh thread already running")
        return

    interval = interval_seconds if interval_seconds is not None else get_refresh_interval_seconds()

    _stop_event.clear()
    _refresh_thread = threading.Thread(
        target=_refresh_loop,
        args=(service, interval),
        daemon=True,
        name='market-data-refresh-loop',
    )
    _refresh_thread.start()
    logger.info(f"Background refresh thread started (every {interval}s)")


def stop_background_refresh():
    """Stop the background refresh thread gracefully."""
    global _refresh_thread

    if _refresh_thread is None:
        return

    logger.info("Stopping background refresh thread...")
    _stop_event.set()
    _refresh_thread.join(timeout=5)
    _refresh_thread = None
    logger.info("Background refresh thread stopped")


def is_running() -> bool:
    return _refresh_thread is not None and _refresh_thread.is_alive()


def _refresh_loop(service, interval_seconds: int):
    """Main loop: refresh immediately, then every interval until stopped."""
    while not _stop_event.is_set():
        try:
            run_refresh_cycle(service)
        except Exception as e:
            logger.exception(f"Refresh cycle failed: {e}")

        next_refresh = datetime.now(timezone.utc) + timedelta(seconds=interval_seconds)
        logger.info(f"Next market data refresh at {next_refresh.isoformat()}")

        if _stop_event.wait(timeout=interval_seconds):
            return


def run_refresh_cycle(service) -> dict:
    """Execute one refresh of both caches and log the outcome."""
    results = service.refresh_all()
    for key, result in results.items():
        if result['success']:
            logger.info(f"{key}: {result['value']} ({result['source']})")
        else:
            logger.warning(f"{key} refresh failed: {result['error']}")
    return results
