"""
Shared fixtures for the Prime API runtime tests.

Time is simulated with FakeClock so quota windows and token expiry can be
moved forward without waiting. HTTP traffic goes through httpx.MockTransport.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

from prime_runtime.client.executor import RequestExecutor
from prime_runtime.client.oauth import TokenSupplier
from prime_runtime.client.rate_limiter import AdmissionController

# 2023-11-14T22:13:20Z, 6400 seconds before the next UTC midnight
START_TIME = 1_700_000_000.0

TOKEN_URL = "https://prime.test/oauth/token"
API_URL = "https://prime.test/api"

Handler = Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]]


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class AdvancingSleep:
    """Sleep replacement that moves the fake clock forward instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class StalledSleep:
    """Sleep replacement that only yields, leaving time to the test."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


def token_response(access_token: str, expires_in: int = 3600) -> httpx.Response:
    return httpx.Response(
        200,
        json={"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in},
    )


def jsonapi_response(status_code: int, payload: Any = None, headers: Optional[dict] = None) -> httpx.Response:
    content = b"" if payload is None else json.dumps(payload).encode()
    return httpx.Response(
        status_code,
        content=content,
        headers={"content-type": "application/vnd.api.v2+json", **(headers or {})},
    )


@dataclass
class Harness:
    """An executor wired to a mock transport, plus a record of traffic."""

    executor: RequestExecutor
    supplier: TokenSupplier
    admission: AdmissionController
    token_requests: List[httpx.Request] = field(default_factory=list)
    api_requests: List[httpx.Request] = field(default_factory=list)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def make_harness(clock):
    """
    Factory for an executor whose token endpoint issues token-1, token-2, ...

    ``api_handler`` receives every non-token request and may be sync or async.
    """
    clients: List[httpx.AsyncClient] = []

    def factory(
        api_handler: Handler,
        admission: Optional[AdmissionController] = None,
        token_handler: Optional[Handler] = None,
    ) -> Harness:
        issued = iter(f"token-{n}" for n in range(1, 100))
        harness_ref: List[Harness] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            harness = harness_ref[0]
            if str(request.url) == TOKEN_URL:
                harness.token_requests.append(request)
                if token_handler is not None:
                    result = token_handler(request)
                else:
                    result = token_response(next(issued))
            else:
                harness.api_requests.append(request)
                result = api_handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        supplier = TokenSupplier(
            TOKEN_URL, "client-id", "client-secret", "user", "secret-password",
            http_client=client,
            clock=clock,
        )
        admission = admission or AdmissionController(clock=clock, sleep=AdvancingSleep(clock))
        executor = RequestExecutor(API_URL, supplier, admission, http_client=client)
        harness = Harness(executor=executor, supplier=supplier, admission=admission)
        harness_ref.append(harness)
        return harness

    yield factory

    for client in clients:
        await client.aclose()
