"""
Booking engine entry point.

The engine is a library consumed by the marketplace API layer. Run this
module to exercise it offline against in-memory collaborators.

Usage:
    Demo, all scenarios:  python main.py
    One scenario:         python main.py --scenario conflict
"""

import logging

from booking_engine.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Start the offline console demo (no database or payment keys required)."""
    from console_demo import main as demo_main

    logger.info("Starting %s console demo", settings.service_name)
    demo_main()


if __name__ == "__main__":
    _run_console_mode()
