import pytest
import pytest_asyncio

from storefront_sync.backends.memory import MemoryStorage
from storefront_sync.cache import TaggedCache
from storefront_sync.proxy import StorageProxy


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def reset_storage_proxy():
    yield
    StorageProxy.set_backend(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def tagged_cache(storage: MemoryStorage, clock: FakeClock) -> TaggedCache:
    return TaggedCache(storage, clock=clock)
