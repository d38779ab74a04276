from datetime import datetime, timedelta, timezone
import pytest
from oncedoc_core.audit import InMemoryAuditLog
from oncedoc_core.blobstore import InMemoryBlobStore
from oncedoc_core.cleanup import CleanupQueue
from oncedoc_core.config import LifecycleConfig
from oncedoc_core.lifecycle import DocumentLifecycleService
from oncedoc_core.registry import InMemoryRegistry, SQLiteRegistry


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def registry(request, tmp_path, clock):
    if request.param == "memory":
        reg = InMemoryRegistry(clock=clock)
    else:
        reg = SQLiteRegistry(str(tmp_path / "registry.db"), clock=clock)
    yield reg
    reg.close()


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def audit():
    return InMemoryAuditLog()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_service(clock, store, audit, sleeps):
    services = []

    def _make(**overrides):
        config = overrides.pop("config", None) or LifecycleConfig(retry_delay_base=0.5)
        blobstore = overrides.pop("blobstore", store)
        registry = overrides.pop("registry", None)
        cleanup = overrides.pop("cleanup", None)
        svc = DocumentLifecycleService(
            registry=registry if registry is not None else InMemoryRegistry(clock=clock),
            blobstore=blobstore,
            audit=overrides.pop("audit", audit),
            config=config,
            cleanup=cleanup if cleanup is not None else CleanupQueue(blobstore, delay_base=0),
            sleep=sleeps.append,
            **overrides,
        )
        services.append(svc)
        return svc

    yield _make
    for svc in services:
        svc.cleanup.close()


@pytest.fixture
def service(make_service):
    return make_service()
