"""
Mock provider directory.

In production, this would read provider profiles and weekly schedules
from the profile service.
"""

import asyncio
import logging
from typing import Optional, Protocol

from booking_engine.scheduling.errors import ProviderNotFoundError
from booking_engine.schemas.availability_schema import ProviderSchedule
from booking_engine.schemas.provider_schema import ProviderProfile

logger = logging.getLogger(__name__)


class ProviderDirectory(Protocol):
    async def get_profile(self, provider_id: str) -> ProviderProfile: ...

    async def get_schedule(self, provider_id: str) -> Optional[ProviderSchedule]: ...

    async def save_schedule(self, schedule: ProviderSchedule) -> None: ...


class InMemoryProviderDirectory:
    def __init__(self) -> None:
        self._profiles: dict[str, ProviderProfile] = {}
        self._schedules: dict[str, ProviderSchedule] = {}

    def add_profile(self, profile: ProviderProfile) -> None:
        self._profiles[profile.provider_id] = profile.model_copy(deep=True)

    def add_schedule(self, schedule: ProviderSchedule) -> None:
        self._schedules[schedule.provider_id] = schedule.model_copy(deep=True)

    async def get_profile(self, provider_id: str) -> ProviderProfile:
        await asyncio.sleep(0)
        profile = self._profiles.get(provider_id)
        if profile is None:
            raise ProviderNotFoundError(provider_id)
        return profile.model_copy(deep=True)

    async def get_schedule(self, provider_id: str) -> Optional[ProviderSchedule]:
        await asyncio.sleep(0)
        schedule = self._schedules.get(provider_id)
        return schedule.model_copy(deep=True) if schedule is not None else None

    async def save_schedule(self, schedule: ProviderSchedule) -> None:
        await asyncio.sleep(0)
        if schedule.provider_id not in self._profiles:
            raise ProviderNotFoundError(schedule.provider_id)
        self._schedules[schedule.provider_id] = schedule.model_copy(deep=True)
        logger.debug("Schedule saved for %s", schedule.provider_id)
