"""Repository test cases against the relational backend (in-memory SQLite)."""
import math
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from framework.repository import Dialect, ModelHandle, SQLHandle
from apps.orders.repository import OrderRepository
from apps.products.models import Product
from apps.products.repository import ProductRepository
from apps.users.repository import UserRepository


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def product_repo(sql_handles, counters) -> ProductRepository:
    return ProductRepository(sql_handles["products"], counters)


@pytest.fixture
def user_repo(sql_handles, counters) -> UserRepository:
    return UserRepository(sql_handles["users"], counters)


@pytest.fixture
def order_repo(sql_handles, counters) -> OrderRepository:
    return OrderRepository(sql_handles["orders"], counters)


async def seed_boots(repo: ProductRepository):
    """25 matching shoes plus two rows that must not match."""
    for i in range(25):
        result = await repo.create_product({
            "name": f"Leather Boot {i}",
            "category": "shoes",
            "price": 50.0 + i,
            "created_at": BASE_TIME + timedelta(hours=i),
        })
        assert result.success
    await repo.create_product({"name": "Ankle boot", "category": "bags", "created_at": BASE_TIME})
    await repo.create_product({"name": "Beach sandal", "category": "shoes", "created_at": BASE_TIME})


async def seed_user(repo: UserRepository, **overrides) -> dict:
    data = {
        "username": "ann",
        "email": "ann@example.com",
        "password": "hashed-secret",
        "full_name": "Ann Smith",
        "role": "customer",
    }
    data.update(overrides)
    result = await repo.create_user(data)
    assert result.success, result.error
    return result.data


class TestProductRepository:
    """Product CRUD, search and pagination."""

    @pytest.mark.asyncio
    async def test_dialect_is_relational(self, product_repo):
        assert product_repo.dialect is Dialect.RELATIONAL

    @pytest.mark.asyncio
    async def test_search_page_two(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({"category": "shoes", "search": "boot"}, page=2, limit=10)

        assert result.success is True
        assert result.data["pagination"] == {"current": 2, "pages": 3, "total": 25}
        names = [product["name"] for product in result.data["products"]]
        assert names == [f"Leather Boot {i}" for i in range(14, 4, -1)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,limit", [(1, 7), (4, 7), (9, 3), (1, 100)])
    async def test_pages_is_ceil_of_total(self, product_repo, page, limit):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({"category": "shoes"}, page=page, limit=limit)

        pagination = result.data["pagination"]
        assert pagination["current"] == page
        assert pagination["total"] == 26
        assert pagination["pages"] == math.ceil(26 / limit)

    @pytest.mark.asyncio
    async def test_page_past_end_echoes_page(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({"search": "boot"}, page=50, limit=10)

        assert result.success is True
        assert result.data["products"] == []
        assert result.data["pagination"] == {"current": 50, "pages": 3, "total": 26}

    @pytest.mark.asyncio
    async def test_all_category_and_unknown_fields_ignored(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({"category": "all", "colour": "red"}, limit=50)

        assert result.data["pagination"]["total"] == 27

    @pytest.mark.asyncio
    async def test_created_at_range(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({
            "category": "shoes",
            "createdAt": {"gte": "2024-01-01T10:00:00Z", "lt": "2024-01-01T15:00:00Z"},
        })

        names = [product["name"] for product in result.data["products"]]
        assert names == [f"Leather Boot {i}" for i in range(14, 9, -1)]

    @pytest.mark.asyncio
    async def test_get_by_category(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_products_by_category("bags")

        assert [product["name"] for product in result.data["products"]] == ["Ankle boot"]

    @pytest.mark.asyncio
    async def test_get_by_id(self, product_repo):
        created = (await product_repo.create_product({"name": "Cap", "category": "hats"})).data

        found = await product_repo.get_product_by_id(created["id"])
        missing = await product_repo.get_product_by_id(9999)

        assert found.success is True
        assert found.data["name"] == "Cap"
        assert missing.success is False
        assert missing.data is None
        assert missing.error is None

    @pytest.mark.asyncio
    async def test_update_and_empty_update(self, product_repo):
        created = (await product_repo.create_product({"name": "Cap", "price": 10.0})).data
        before = (await product_repo.get_product_by_id(created["id"])).data

        unchanged = await product_repo.update_product(created["id"], {})
        assert unchanged.data == before
        assert (await product_repo.get_product_by_id(created["id"])).data == before

        updated = await product_repo.update_product(created["id"], {"price": 12.5, "unknown": 1})
        assert updated.success is True
        assert updated.data["price"] == 12.5

    @pytest.mark.asyncio
    async def test_update_missing_record(self, product_repo):
        result = await product_repo.update_product(4242, {"price": 1.0})
        assert result.success is False
        assert result.data is None

    @pytest.mark.asyncio
    async def test_delete(self, product_repo):
        created = (await product_repo.create_product({"name": "Cap"})).data

        deleted = await product_repo.delete_product(created["id"])
        again = await product_repo.delete_product(created["id"])

        assert deleted.success is True
        assert again.success is False
        assert (await product_repo.get_product_by_id(created["id"])).success is False

    @pytest.mark.asyncio
    async def test_create_updates_counter(self, product_repo, counters):
        await product_repo.create_product({"name": "Cap"})
        assert counters.get("products") == 1


class TestUserRepository:
    """Users: credentials never read back, never updated."""

    @pytest.mark.asyncio
    async def test_reads_hide_password(self, user_repo):
        user = await seed_user(user_repo)

        assert "password" not in user
        assert "password" not in (await user_repo.get_user_by_id(user["id"])).data
        listed = await user_repo.get_all_users()
        assert all("password" not in row for row in listed.data["users"])

    @pytest.mark.asyncio
    async def test_update_strips_password(self, user_repo):
        user = await seed_user(user_repo)

        result = await user_repo.update_user(user["id"], {"password": "x", "full_name": "y"})

        assert result.success is True
        assert result.data["full_name"] == "y"
        stored = await user_repo.get_user_by_email("ann@example.com")
        assert stored.data["password"] == "hashed-secret"

    @pytest.mark.asyncio
    async def test_update_with_only_password_is_noop(self, user_repo):
        user = await seed_user(user_repo)
        before = (await user_repo.get_user_by_id(user["id"])).data

        result = await user_repo.update_user(user["id"], {"password": "x"})

        assert result.data == before

    @pytest.mark.asyncio
    async def test_search_matches_email_or_name(self, user_repo):
        await seed_user(user_repo)
        await seed_user(user_repo, username="bob", email="bob@example.com", full_name="Robert Annex")
        await seed_user(user_repo, username="cat", email="cat@example.com", full_name="Cat Jones")

        result = await user_repo.get_all_users({"search": "ann"})

        assert sorted(row["username"] for row in result.data["users"]) == ["ann", "bob"]

    @pytest.mark.asyncio
    async def test_by_role_and_stats(self, user_repo, counters):
        await seed_user(user_repo)
        await seed_user(user_repo, username="vee", email="vee@example.com", role="vendor")

        vendors = await user_repo.get_users_by_role("vendor")
        stats = await user_repo.get_admin_stats()

        assert [row["username"] for row in vendors.data["users"]] == ["vee"]
        assert stats.data["total_users"] == 2
        assert stats.data["vendor_count"] == 1
        assert stats.data["customer_count"] == 1
        assert counters.get("users") == 2
        assert counters.get("vendors") == 1

    @pytest.mark.asyncio
    async def test_duplicate_email_is_envelope(self, user_repo):
        await seed_user(user_repo)

        result = await user_repo.create_user({
            "username": "ann2", "email": "ann@example.com", "password": "p",
        })

        assert result.success is False
        assert result.error

    @pytest.mark.asyncio
    async def test_get_by_email_missing(self, user_repo):
        result = await user_repo.get_user_by_email("nobody@example.com")
        assert result.success is False
        assert result.data is None


class TestOrderRepository:
    """Orders and revenue."""

    @pytest.mark.asyncio
    async def test_create_feeds_revenue(self, order_repo, counters):
        await order_repo.create_order({"customer_id": 1, "total_amount": 120.5})
        await order_repo.create_order({"customer_id": 1, "total_amount": 30.0})

        assert counters.get("orders") == 2
        assert counters.get("revenue") == 150.5

    @pytest.mark.asyncio
    async def test_status_update(self, order_repo):
        order = (await order_repo.create_order({"customer_id": 1, "total_amount": 10.0})).data

        shipped = await order_repo.update_order_status(order["id"], "shipped")
        invalid = await order_repo.update_order_status(order["id"], "teleported")

        assert shipped.data["status"] == "shipped"
        assert invalid.success is False
        by_status = await order_repo.get_orders_by_status("shipped")
        assert by_status.data["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_recent_orders_newest_first(self, order_repo):
        for i in range(5):
            await order_repo.create_order({
                "customer_id": 1,
                "total_amount": float(i),
                "created_at": BASE_TIME + timedelta(days=i),
            })

        result = await order_repo.get_recent_orders(limit=3)

        assert [order["total_amount"] for order in result.data] == [4.0, 3.0, 2.0]

    @pytest.mark.asyncio
    async def test_analytics(self, order_repo):
        await order_repo.create_order({"customer_id": 1, "total_amount": 10.0, "status": "delivered"})
        await order_repo.create_order({"customer_id": 2, "total_amount": 5.0})

        result = await order_repo.get_order_analytics()

        assert result.data["total_orders"] == 2
        assert result.data["by_status"]["delivered"] == 1
        assert result.data["by_status"]["pending"] == 1
        assert result.data["total_revenue"] == 15.0


class TestBackendFailure:
    """Backend exceptions never escape the repository."""

    @pytest.fixture
    def broken_repo(self, counters) -> ProductRepository:
        def session_factory():
            raise SQLAlchemyError("db down")

        return ProductRepository(ModelHandle(relational=SQLHandle(Product, session_factory)), counters)

    @pytest.mark.asyncio
    async def test_every_operation_returns_envelope(self, broken_repo):
        results = [
            await broken_repo.get_all_products({"category": "shoes"}),
            await broken_repo.get_product_by_id(1),
            await broken_repo.create_product({"name": "Cap"}),
            await broken_repo.update_product(1, {"name": "Hat"}),
            await broken_repo.delete_product(1),
            await broken_repo.count(),
        ]

        for result in results:
            assert result.success is False
            assert "db down" in result.error

    @pytest.mark.asyncio
    async def test_failed_create_does_not_count(self, broken_repo, counters):
        await broken_repo.create_product({"name": "Cap"})
        assert counters.get("products") == 0


class TestFilterContract:
    """Date ranges and embedded objects on real tables."""

    @pytest.mark.asyncio
    async def test_invalid_date_bound_is_dropped(self, product_repo):
        await seed_boots(product_repo)

        result = await product_repo.get_all_products({"category": "shoes", "createdAt": {"gte": "not-a-date"}})

        assert result.success is True
        assert result.data["pagination"]["total"] == 26

    @pytest.mark.asyncio
    async def test_embedded_object_matches_json_paths(self, order_repo):
        await order_repo.create_order({
            "customer_id": 1, "total_amount": 1.0, "shipping_address": {"city": "Paris", "zip": "75001"},
        })
        await order_repo.create_order({
            "customer_id": 1, "total_amount": 2.0, "shipping_address": {"city": "Lyon", "zip": "69001"},
        })

        result = await order_repo.get_all_orders({"shipping_address": {"city": "Paris", "zip": ""}})

        assert result.success is True
        assert [order["total_amount"] for order in result.data["orders"]] == [1.0]

    @pytest.mark.asyncio
    async def test_date_from_and_to(self, order_repo):
        for i in range(5):
            await order_repo.create_order({
                "customer_id": 1,
                "total_amount": float(i),
                "created_at": BASE_TIME + timedelta(days=i),
            })

        result = await order_repo.get_all_orders({"dateFrom": "2024-01-02", "dateTo": "2024-01-04"})
        open_ended = await order_repo.get_all_orders({"dateFrom": "2024-01-04", "dateTo": ""})

        assert [order["total_amount"] for order in result.data["orders"]] == [3.0, 2.0, 1.0]
        assert open_ended.data["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_non_mapping_update_is_envelope(self, product_repo):
        created = (await product_repo.create_product({"name": "Cap"})).data

        result = await product_repo.update_product(created["id"], ["name", "Hat"])

        assert result.success is False
        assert result.error


class TestRelatedSummaries:
    """Vendor on product reads, customer on order reads."""

    @pytest.fixture
    def linked_products(self, sql_handles, counters) -> ProductRepository:
        return ProductRepository(sql_handles["products"], counters, related={"vendor": sql_handles["users"]})

    @pytest.fixture
    def linked_orders(self, sql_handles, counters) -> OrderRepository:
        return OrderRepository(sql_handles["orders"], counters, related={"customer": sql_handles["users"]})

    @pytest.mark.asyncio
    async def test_product_vendor(self, linked_products, user_repo):
        vendor = await seed_user(user_repo, username="vee", email="vee@example.com", full_name="Vee Vendor", role="vendor")
        created = (await linked_products.create_product({"name": "Cap", "vendor_id": vendor["id"]})).data
        await linked_products.create_product({"name": "Loose hat"})

        listed = await linked_products.get_all_products()
        found = await linked_products.get_product_by_id(created["id"])

        summary = {"id": vendor["id"], "full_name": "Vee Vendor", "email": "vee@example.com"}
        by_name = {product["name"]: product for product in listed.data["products"]}
        assert by_name["Cap"]["vendor"] == summary
        assert by_name["Loose hat"]["vendor"] is None
        assert found.data["vendor"] == summary

    @pytest.mark.asyncio
    async def test_order_customer(self, linked_orders, user_repo):
        customer = await seed_user(user_repo)
        order = (await linked_orders.create_order({"customer_id": customer["id"], "total_amount": 9.0})).data

        recent = await linked_orders.get_recent_orders()
        found = await linked_orders.get_order_by_id(order["id"])

        assert recent.data[0]["customer"]["email"] == "ann@example.com"
        assert found.data["customer"] == {"id": customer["id"], "full_name": "Ann Smith", "email": "ann@example.com"}
        assert "password" not in found.data["customer"]

    @pytest.mark.asyncio
    async def test_unknown_relation_ignored(self, sql_handles, counters):
        repo = ProductRepository(sql_handles["products"], counters, related={"owner": sql_handles["users"]})
        await repo.create_product({"name": "Cap"})

        listed = await repo.get_all_products()

        assert "owner" not in listed.data["products"][0]
