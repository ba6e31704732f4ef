import asyncio

import httpx
import pytest

from conftest import FakeLocationProvider, T0, make_fix
from fieldapp.errors import LocationUnavailable, PermissionDenied
from fieldapp.services.location import (
    HttpLocationProvider,
    LocationAcquirer,
    LocationProviderError,
    ManualLocationProvider,
    StaticLocationPermission,
)


def _acquire(provider, granted=True, timeout_s=2.0):
    locator = LocationAcquirer(provider, StaticLocationPermission(granted), timeout_s=timeout_s)
    return asyncio.run(locator.acquire())


def test_permission_denied_skips_acquisition():
    provider = FakeLocationProvider(current=make_fix(12.91, 77.61))
    with pytest.raises(PermissionDenied):
        _acquire(provider, granted=False)
    assert provider.current_calls == 0
    assert provider.last_calls == 0


def test_fresh_fix_wins_over_cached():
    fresh, cached = make_fix(12.91, 77.61), make_fix(1.0, 2.0)
    provider = FakeLocationProvider(current=fresh, last=cached)
    assert _acquire(provider) == fresh
    assert provider.last_calls == 0


def test_falls_back_to_last_known_fix():
    cached = make_fix(12.90, 77.62)
    provider = FakeLocationProvider(current=None, last=cached)
    assert _acquire(provider) == cached
    assert provider.last_calls == 1


def test_no_fix_at_all_is_unavailable():
    with pytest.raises(LocationUnavailable):
        _acquire(FakeLocationProvider(current=None, last=None))


def test_provider_fault_is_unavailable():
    provider = FakeLocationProvider(current=None, last=make_fix(1.0, 2.0))
    provider.current_error = LocationProviderError("gps service crashed")
    with pytest.raises(LocationUnavailable):
        _acquire(provider)
    assert provider.last_calls == 0


def test_exceeding_the_bound_is_unavailable():
    provider = FakeLocationProvider(current=make_fix(12.91, 77.61))
    provider.delay_s = 1.0
    with pytest.raises(LocationUnavailable):
        _acquire(provider, timeout_s=0.05)


def test_manual_provider_remembers_its_last_fix():
    provider = ManualLocationProvider(12.91, 77.61, accuracy_m=5.0, clock=lambda: T0)

    async def scenario():
        assert await provider.last_known_location() is None
        fix = await provider.current_location()
        return fix, await provider.last_known_location()

    fix, last = asyncio.run(scenario())
    assert (fix.latitude, fix.longitude, fix.accuracy_m) == (12.91, 77.61, 5.0)
    assert last == fix


def test_manual_provider_without_coordinates_is_unavailable():
    with pytest.raises(LocationUnavailable):
        _acquire(ManualLocationProvider(None, None))


def _http_provider(handler):
    return HttpLocationProvider("http://127.0.0.1:7070", transport=httpx.MockTransport(handler))


def test_http_provider_reads_current_fix():
    def handler(request):
        assert request.url.path == "/location/current"
        return httpx.Response(200, json={"lat": 12.91, "lng": 77.61, "accuracy_m": 8, "acquired_at": T0.isoformat()})

    fix = _acquire(_http_provider(handler))
    assert (fix.latitude, fix.longitude) == (12.91, 77.61)
    assert fix.acquired_at == T0


def test_http_provider_no_content_falls_back_to_last():
    def handler(request):
        if request.url.path == "/location/current":
            return httpx.Response(204)
        return httpx.Response(200, json={"lat": 12.92, "lng": 77.60})

    fix = _acquire(_http_provider(handler))
    assert (fix.latitude, fix.longitude) == (12.92, 77.60)


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500),
        lambda request: httpx.Response(200, json={"lat": "north"}),
    ],
)
def test_http_provider_faults_are_unavailable(handler):
    with pytest.raises(LocationUnavailable):
        _acquire(_http_provider(handler))


def test_http_provider_connection_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LocationUnavailable):
        _acquire(_http_provider(handler))
