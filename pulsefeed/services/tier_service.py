"""
Tier Service
============

Resolves a user's subscription tier and the delivery delay it implies.
Static premium/pro lists from configuration are consulted first; otherwise
the external entitlement service is asked. Any lookup failure resolves to
the free tier.
"""

import asyncio
from typing import Optional

import aiohttp

from ..config.settings import TierSettings
from ..database.models import Tier
from ..utils.exceptions import ErrorCode, TierLookupError
from ..utils.logging import get_logger_for_component


class TierService:
    """Subscription tier lookup with delivery delay policy."""

    def __init__(self, settings: Optional[TierSettings] = None):
        self.settings = settings or TierSettings()
        self.logger = get_logger_for_component("tier_service")
        self._premium = set(self.settings.premium_user_ids)
        self._pro = set(self.settings.pro_user_ids)
        self._session: Optional[aiohttp.ClientSession] = None

    async def get_tier(self, user_id: str) -> Tier:
        """Resolve the tier of ``user_id``; unknown or failed lookups are free."""
        if user_id in self._pro:
            return Tier.PRO
        if user_id in self._premium:
            return Tier.PREMIUM
        if not self.settings.entitlement_url:
            return Tier.FREE

        try:
            return await self._fetch_tier(user_id)
        except TierLookupError as e:
            self.logger.warning(f"Tier lookup failed for {user_id}, defaulting to free: {e}")
            return Tier.FREE

    async def get_delivery_delay_ms(self, user_id: str) -> int:
        tier = await self.get_tier(user_id)
        return self.delay_ms_for(tier)

    def delay_ms_for(self, tier: Tier) -> int:
        if tier == Tier.FREE:
            return self.settings.free_delay_ms
        return 0

    async def _fetch_tier(self, user_id: str) -> Tier:
        """Ask the entitlement service for a user's tier.

        Raises:
            TierLookupError: On transport errors, bad status or unknown tier values
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.lookup_timeout)
            )

        url = f"{self.settings.entitlement_url.rstrip('/')}/{user_id}"
        headers = {"Accept": "application/json"}
        if self.settings.entitlement_api_key:
            headers["Authorization"] = f"Bearer {self.settings.entitlement_api_key}"

        try:
            async with self._session.get(url, headers=headers) as response:
                if response.status == 404:
                    return Tier.FREE
                if response.status != 200:
                    raise TierLookupError(
                        f"Entitlement service returned HTTP {response.status}",
                        user_id=user_id,
                    )
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TierLookupError(
                f"Entitlement request failed: {e}",
                user_id=user_id,
                error_code=ErrorCode.TIER_LOOKUP_FAILED,
            ) from e

        raw_tier = payload.get("tier") if isinstance(payload, dict) else None
        try:
            return Tier(str(raw_tier).lower())
        except ValueError as e:
            raise TierLookupError(f"Unknown tier value: {raw_tier!r}", user_id=user_id) from e

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
