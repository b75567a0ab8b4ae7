"""
Integration Test: MongoRepository

Runs the synchronous repository against an in-memory MongoDB (mongomock).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pydantic import BaseModel

from shopping_center.config import DbSettings
from shopping_center.data.models import Product
from shopping_center.infrastructure import repository as repository_module
from shopping_center.infrastructure.exceptions import ConfigurationError, InvalidIdError
from shopping_center.infrastructure.filters import MATCH_ALL, Projection, Where
from shopping_center.infrastructure.repository import MongoRepository


class ProductSummary(BaseModel):
    name: str
    price: float


# ============================================================================
# Construction
# ============================================================================


@pytest.mark.parametrize(
    "settings",
    [
        None,
        DbSettings(connection_string="", database_name="shop"),
        DbSettings(connection_string="mongodb://localhost", database_name="  "),
        DbSettings(connection_string="   ", database_name="shop"),
    ],
)
def test_missing_settings_fail_fast(settings) -> None:
    with pytest.raises(ConfigurationError):
        MongoRepository(Product, settings, client=MagicMock())


def test_binds_registered_collection(repository, db_settings, mongo_client) -> None:
    assert repository.collection_name == "products"
    assert repository._collection.full_name == f"{db_settings.database_name}.products"


def test_injected_client_is_not_closed(db_settings) -> None:
    client = MagicMock()
    with MongoRepository(Product, db_settings, client=client):
        pass
    client.close.assert_not_called()


# ============================================================================
# Inserts
# ============================================================================


def test_insert_one_assigns_id_and_created_at(repository, make_product) -> None:
    started = datetime.now(timezone.utc) - timedelta(milliseconds=1)
    product = make_product(updated_at=started, created_at=started - timedelta(days=3))

    repository.insert_one(product)

    assert product.has_id
    assert product.created_at >= started
    assert product.updated_at is None
    stored = repository.find_by_id(str(product.id))
    assert stored is not None
    assert stored.name == product.name
    assert stored.created_at == product.created_at


def test_insert_one_keeps_caller_id(repository, make_product) -> None:
    oid = ObjectId()
    product = make_product(id=oid)

    repository.insert_one(product)

    assert product.id == oid
    assert repository.find_by_id(oid) is not None


def test_insert_one_without_new_id_replaces_existing(repository, make_product) -> None:
    product = make_product()
    repository.insert_one(product)
    created_at = product.created_at

    product.price = 899.0
    repository.insert_one(product, new_id=False)

    assert repository.count() == 1
    stored = repository.find_by_id(product.id)
    assert stored.price == 899.0
    assert stored.created_at == created_at
    assert stored.updated_at is not None
    assert stored.updated_at > created_at


def test_replace_with_rebuilt_document_keeps_created_at(repository, make_product) -> None:
    product = make_product()
    repository.insert_one(product)

    rebuilt = Product(id=product.id, name="iPhone XS", price=999.0)
    repository.insert_one(rebuilt, new_id=False)

    stored = repository.find_by_id(product.id)
    assert stored.name == "iPhone XS"
    assert stored.created_at == product.created_at
    assert stored.updated_at > product.created_at
    assert repository.get_all_with_paging(page_size=1)[0].id == product.id


def test_insert_one_without_new_id_inserts_when_id_missing(repository, make_product) -> None:
    product = make_product()
    repository.insert_one(product, new_id=False)

    assert product.has_id
    assert product.updated_at is None
    assert repository.contains(Where("id") == str(product.id))


def test_insert_many_stamps_every_document(repository, make_product) -> None:
    products = [make_product(f"Phone {i}") for i in range(3)]

    repository.insert_many(products)

    assert all(p.has_id and p.created_at is not None for p in products)
    assert len({p.id for p in products}) == 3
    assert len(repository.get_all()) == 3


def test_insert_many_empty_is_noop(repository) -> None:
    repository.insert_many([])
    assert repository.get_all() == []


# ============================================================================
# Queries
# ============================================================================


def test_contains_and_find_one(repository, make_product) -> None:
    repository.insert_many([make_product("Galaxy", price=840.0), make_product("Pixel", price=600.0)])

    assert repository.contains(Where("name") == "Pixel")
    assert not repository.contains(Where("name") == "Nokia")
    assert repository.find_one(Where("price") > 700).name == "Galaxy"
    assert repository.find_one(Where("price") > 5000) is None


def test_filter_by_accepts_specs_and_raw_queries(repository, make_product) -> None:
    repository.insert_many(
        [
            make_product("Galaxy", price=840.0),
            make_product("Pixel", price=600.0),
            make_product("Huawei Plus", category="Tablet", price=650.0),
        ]
    )

    cheap_phones = repository.filter_by((Where("category") == "Smart Phone") & (Where("price") < 700))
    assert [p.name for p in cheap_phones] == ["Pixel"]

    tablets = repository.filter_by({"category": "Tablet"})
    assert [p.name for p in tablets] == ["Huawei Plus"]

    assert repository.filter_by(Where("name") == "Nokia") == []


def test_filter_by_with_projection(repository, make_product) -> None:
    repository.insert_many([make_product("Galaxy", price=840.0), make_product("Pixel", price=600.0)])

    summaries = repository.filter_by(Where("price") > 700, Projection(ProductSummary))

    assert summaries == [ProductSummary(name="Galaxy", price=840.0)]


def test_find_by_id_missing_returns_none(repository) -> None:
    assert repository.find_by_id(str(ObjectId())) is None


def test_find_by_id_malformed_never_touches_store(db_settings) -> None:
    client = MagicMock()
    repository = MongoRepository(Product, db_settings, client=client)
    collection = client[db_settings.database_name]["products"]

    with pytest.raises(InvalidIdError):
        repository.find_by_id("not-a-valid-object-id")

    collection.find_one.assert_not_called()


# ============================================================================
# Replace and delete
# ============================================================================


def test_replace_one_stamps_strictly_increasing_updated_at(repository, make_product) -> None:
    product = make_product()
    repository.insert_one(product)

    repository.replace_one(product)
    first = product.updated_at
    assert first > product.created_at

    repository.replace_one(product)
    assert product.updated_at > first
    assert repository.find_by_id(product.id).updated_at == product.updated_at


def test_replace_one_overwrites_whole_document(repository, make_product) -> None:
    product = make_product(summary="old summary")
    repository.insert_one(product)

    replacement = Product(id=product.id, name="Renamed", created_at=product.created_at)
    repository.replace_one(replacement)

    stored = repository.find_by_id(product.id)
    assert stored.name == "Renamed"
    assert stored.summary == ""


def test_replace_one_without_match_is_silent(repository, make_product) -> None:
    product = make_product(id=ObjectId())
    repository.replace_one(product)

    assert product.updated_at is not None
    assert repository.get_all() == []


def test_replace_one_requires_id(repository, make_product) -> None:
    with pytest.raises(InvalidIdError):
        repository.replace_one(make_product())


def test_delete_one_removes_single_match(repository, make_product) -> None:
    repository.insert_many([make_product("a"), make_product("b")])

    repository.delete_one(Where("category") == "Smart Phone")

    assert len(repository.get_all()) == 1


def test_delete_by_id(repository, make_product) -> None:
    product = make_product()
    repository.insert_one(product)

    repository.delete_by_id(str(product.id))

    assert repository.find_by_id(product.id) is None


def test_delete_by_id_missing_leaves_collection_unchanged(repository, make_product) -> None:
    repository.insert_many([make_product("a"), make_product("b")])

    repository.delete_by_id(str(ObjectId()))

    assert len(repository.get_all()) == 2


def test_delete_by_id_malformed(repository) -> None:
    with pytest.raises(InvalidIdError):
        repository.delete_by_id("xyz")


def test_delete_many(repository, make_product) -> None:
    repository.insert_many(
        [make_product("a"), make_product("b"), make_product("c", category="Tablet")]
    )

    repository.delete_many(Where("category") == "Smart Phone")

    assert [p.name for p in repository.get_all()] == ["c"]
    repository.delete_many(MATCH_ALL)
    assert repository.get_all() == []


# ============================================================================
# Listing and counting
# ============================================================================


def _sequential_clock(monkeypatch) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = iter(base + timedelta(minutes=i) for i in range(100))
    monkeypatch.setattr(repository_module, "utc_now", lambda: next(ticks))


def test_paging_returns_newest_first(repository, make_product, monkeypatch) -> None:
    _sequential_clock(monkeypatch)
    for i in range(1, 6):
        repository.insert_one(make_product(f"Product {i}"))

    page = repository.get_all_with_paging(page_size=2, page_number=2)

    assert [p.name for p in page] == ["Product 3", "Product 2"]
    assert page[0].created_at > page[1].created_at


def test_paging_defaults_and_past_end(repository, make_product, monkeypatch) -> None:
    _sequential_clock(monkeypatch)
    repository.insert_many([make_product(f"Product {i}") for i in range(3)])

    assert len(repository.get_all_with_paging()) == 3
    assert repository.get_all_with_paging(page_size=2, page_number=3) == []
    # check_delete has no effect
    assert repository.get_all_with_paging(check_delete=False) == repository.get_all_with_paging()


@pytest.mark.parametrize("page_size,page_number", [(0, 1), (10, 0), (-1, -1)])
def test_paging_rejects_bad_bounds(repository, page_size, page_number) -> None:
    with pytest.raises(ValueError):
        repository.get_all_with_paging(page_size=page_size, page_number=page_number)


def test_count_tracks_get_all(repository, make_product) -> None:
    repository.insert_many([make_product(f"Product {i}") for i in range(7)])

    total = len(repository.get_all())
    assert abs(repository.count() - total) <= 1
