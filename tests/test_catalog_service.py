import asyncio

import pytest

from helpapp_api.app.core.errors import AccountNotFound, DuplicateServiceType, ServiceTypeNotFound
from helpapp_api.app.schemas.service import ServiceCreate, ServiceTypeCreate
from helpapp_api.app.services.catalog_service import CatalogService


@pytest.fixture
def catalog(db):
    return CatalogService(db)


def test_create_service_type(catalog):
    created = asyncio.run(catalog.create_service_type(ServiceTypeCreate(name="  Cleaning ", description="Homes")))
    assert created.id > 0
    assert created.name == "Cleaning"
    assert created.description == "Homes"


def test_duplicate_service_type_name_is_rejected(catalog, db):
    asyncio.run(catalog.create_service_type(ServiceTypeCreate(name="Cleaning")))
    with pytest.raises(DuplicateServiceType) as excinfo:
        asyncio.run(catalog.create_service_type(ServiceTypeCreate(name="Cleaning")))
    assert "Cleaning" in excinfo.value.message
    assert db.fetch_one("SELECT COUNT(*) AS n FROM service_types WHERE name = 'Cleaning'")["n"] == 1


def test_provider_offers_service(catalog, seeded):
    service = asyncio.run(
        catalog.create_service(
            seeded.provider,
            ServiceCreate(title="Leak check", description="Find leaks.", price=20, service_type_id=seeded.service_type),
        )
    )
    assert service.provider_id == seeded.provider
    assert service.provider.name == "Provider"
    assert service.service_type_id == seeded.service_type
    assert service.price == 20.0


def test_offering_under_unknown_type_is_rejected(catalog, seeded, db):
    with pytest.raises(ServiceTypeNotFound):
        asyncio.run(catalog.create_service(seeded.provider, ServiceCreate(title="X", price=1, service_type_id=9999)))
    assert db.fetch_one("SELECT COUNT(*) AS n FROM services")["n"] == 2


def test_list_all_groups_services_under_their_type(catalog, seeded):
    asyncio.run(catalog.create_service_type(ServiceTypeCreate(name="Electrical")))
    listing = asyncio.run(catalog.list_all())

    assert [t.name for t in listing] == ["Electrical", "Plumbing"]
    electrical, plumbing = listing
    assert electrical.services == []
    assert [s.title for s in plumbing.services] == ["Basic Plumbing Fix", "Pipe Replacement"]
    assert [s.provider.id for s in plumbing.services] == [seeded.provider, seeded.other_provider]
    assert plumbing.services[0].provider.email == "provider@example.com"


def test_list_all_on_empty_catalog(catalog):
    assert asyncio.run(catalog.list_all()) == []


def test_offering_by_a_provider_missing_from_the_store(catalog, seeded, db):
    data = ServiceCreate(title="Leak check", price=20, service_type_id=seeded.service_type)
    with pytest.raises(AccountNotFound):
        asyncio.run(catalog.create_service(9999, data))
    assert db.fetch_one("SELECT COUNT(*) AS n FROM services")["n"] == 2
