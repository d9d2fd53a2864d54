from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.api import PortalAPI
from portal.seed import seed_defaults
from portal.store import MemoryStore


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def api(store: MemoryStore) -> PortalAPI:
    return PortalAPI(store, latency_scale=0)


@pytest.fixture()
def seeded_api(api: PortalAPI) -> PortalAPI:
    seed_defaults(api.store)
    return api
