import sys
from pathlib import Path

import pytest

# Ensure the src layout is importable as top-level `fintrack`
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
if SRC_ROOT.exists() and str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from fintrack import ApiClient, MemoryStorage, RetryPolicy  # noqa: E402
from fintrack.storage import Session, save_session  # noqa: E402


class FakeTransport:
    """Transport double driven by an async ``handler(method, path, headers, body)``.

    The handler returns a payload or raises a raw failure. Every call is
    recorded in ``calls`` as ``(method, path, headers, body)``.
    """

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def count(self, path, method=None):
        return sum(1 for m, p, _, _ in self.calls if p == path and (method is None or m == method))

    async def _call(self, method, path, headers, body=None):
        self.calls.append((method, path, dict(headers), body))
        return await self.handler(method, path, headers, body)

    async def get(self, path, *, headers):
        return await self._call("GET", path, headers)

    async def post(self, path, *, headers, body=None):
        return await self._call("POST", path, headers, body)

    async def put(self, path, *, headers, body=None):
        return await self._call("PUT", path, headers, body)

    async def delete(self, path, *, headers):
        return await self._call("DELETE", path, headers)


def sequence_handler(*outcomes):
    """Handler returning/raising each outcome in turn; the last one repeats."""
    remaining = list(outcomes)

    async def _handler(method, path, headers, body):
        outcome = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return _handler


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def signed_in_storage():
    store = MemoryStorage()
    save_session(store, Session(token="old-token", refresh_token="refresh-1", user_id="u-1"))
    return store


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_client(sleeper):
    def _make(transport, storage=None, **policy_kwargs):
        policy = RetryPolicy(**{"base_delay": 0.1, "max_delay": 1.0, **policy_kwargs})
        return ApiClient(transport, storage=storage or MemoryStorage(), policy=policy, sleep=sleeper)

    return _make
