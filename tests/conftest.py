import pytest

from packages.domain.waste_matching.catalog_store import InMemoryCatalogStore
from packages.domain.waste_matching.identification_service import WasteIdentificationService
from tests.stubs import make_entries, make_settings


@pytest.fixture
def entries():
    return make_entries()


@pytest.fixture
def store(entries):
    return InMemoryCatalogStore(entries)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def service(store, settings):
    return WasteIdentificationService(store, settings=settings)
