"""
Location acquisition for attendance events.

A fresh high-accuracy fix is requested first; if the provider answers without a
fix, the most recent last-known fix is used instead. Permission is checked before
every attempt and the whole request is bounded in time.
"""
import asyncio
from datetime import datetime
from typing import Callable, Optional

import httpx
import structlog
from pydantic import ValidationError

from ..errors import LocationUnavailable, PermissionDenied
from ..schemas.attendance import LocationFix
from .time_rules import utc_now


logger = structlog.get_logger(__name__)


class LocationProviderError(Exception):
    """Infrastructure fault inside a location provider (not a mere missing fix)."""


class LocationPermission:
    def is_granted(self) -> bool:
        raise NotImplementedError


class StaticLocationPermission(LocationPermission):
    def __init__(self, granted: bool = True):
        self.granted = granted

    def is_granted(self) -> bool:
        return self.granted


class LocationProvider:
    async def current_location(self) -> Optional[LocationFix]:
        raise NotImplementedError

    async def last_known_location(self) -> Optional[LocationFix]:
        raise NotImplementedError


class ManualLocationProvider(LocationProvider):
    """Fixed coordinates for a device installed at a site (kiosk mode)."""

    def __init__(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy_m: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m
        self._clock = clock
        self._last: Optional[LocationFix] = None

    async def current_location(self) -> Optional[LocationFix]:
        if self.latitude is None or self.longitude is None:
            return None
        self._last = LocationFix(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy_m=self.accuracy_m,
            acquired_at=self._clock(),
        )
        return self._last

    async def last_known_location(self) -> Optional[LocationFix]:
        return self._last


class HttpLocationProvider(LocationProvider):
    """
    Client for a location service running on the device.

    GET /location/current and GET /location/last answer 200 with
    {lat, lng, accuracy_m, acquired_at} or 204/404 when there is no fix.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("Location service URL is required")
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    async def _fetch(self, path: str) -> Optional[LocationFix]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            raise LocationProviderError(f"Location service request failed: {e}") from e

        if response.status_code in (204, 404):
            return None
        if response.status_code != 200:
            raise LocationProviderError(f"Location service answered {response.status_code}")

        try:
            data = response.json()
            return LocationFix(
                latitude=data["lat"],
                longitude=data["lng"],
                accuracy_m=data.get("accuracy_m"),
                acquired_at=data.get("acquired_at") or utc_now(),
            )
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise LocationProviderError(f"Malformed location payload: {e}") from e

    async def current_location(self) -> Optional[LocationFix]:
        return await self._fetch("/location/current")

    async def last_known_location(self) -> Optional[LocationFix]:
        return await self._fetch("/location/last")


class LocationAcquirer:
    def __init__(
        self,
        provider: LocationProvider,
        permission: LocationPermission,
        timeout_s: float = 12.0,
    ):
        self.provider = provider
        self.permission = permission
        self.timeout_s = timeout_s

    async def acquire(self) -> LocationFix:
        """
        Resolve to one fix or raise.

        Raises:
            PermissionDenied: permission not granted; nothing was attempted
            LocationUnavailable: no fix, a provider fault, or the bound was exceeded
        """
        if not self.permission.is_granted():
            logger.info("location_permission_denied")
            raise PermissionDenied("Location permission is required")

        try:
            fix = await asyncio.wait_for(self._resolve(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("location_timeout", timeout_s=self.timeout_s)
            raise LocationUnavailable(f"No location fix within {self.timeout_s:g}s")
        except LocationProviderError as e:
            logger.warning("location_provider_error", error=str(e))
            raise LocationUnavailable("Location could not be captured") from e

        if fix is None:
            logger.warning("location_unavailable")
            raise LocationUnavailable("Location could not be captured")
        return fix

    async def _resolve(self) -> Optional[LocationFix]:
        fix = await self.provider.current_location()
        if fix is not None:
            return fix
        fix = await self.provider.last_known_location()
        if fix is not None:
            logger.info("location_fallback_last_known", acquired_at=fix.acquired_at.isoformat())
        return fix
