"""
Tests for the storage adapter — repository CRUD, referential integrity,
immutability and the entity-specific queries.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from core.errors import IntegrityViolation


@pytest.mark.asyncio
class TestRepositoryCrud:
    async def test_insert_assigns_id_and_defaults(self, storage):
        branch = await storage.branches.insert({"name": "Bazaar", "code": "TBR-002", "type": "branch"})
        assert uuid.UUID(branch.id)
        assert branch.coverage_radius == 5
        assert branch.monthly_target == 0
        assert branch.created_at.tzinfo is not None

    async def test_get_missing_and_malformed_ids(self, storage):
        assert await storage.branches.get(str(uuid.uuid4())) is None
        assert await storage.branches.get("branch-1") is None

    async def test_update_and_delete(self, storage, seeded):
        device = seeded["device"]
        updated = await storage.pos_devices.update(device.id, {"status": "maintenance"})
        assert updated.status == "maintenance"
        assert (await storage.pos_devices.get(device.id)).status == "maintenance"

        assert await storage.pos_devices.delete(device.id) is True
        assert await storage.pos_devices.delete(device.id) is False
        assert await storage.pos_devices.update(device.id, {"status": "active"}) is None

    async def test_update_status_returns_previous_status(self, storage, seeded):
        device = seeded["device"]
        old_status, updated = await storage.pos_devices.update_status(device.id, {"status": "offline"})
        assert old_status == "active"
        assert updated.status == "offline"

        old_status, updated = await storage.pos_devices.update_status(device.id, {"status": "maintenance"})
        assert old_status == "offline"
        assert await storage.pos_devices.update_status(str(uuid.uuid4()), {"status": "active"}) is None

    async def test_update_rejects_immutable_and_unknown_fields(self, storage, seeded):
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.branches.update(seeded["branch"].id, {"id": str(uuid.uuid4())})
        assert exc_info.value.reason == "immutable"

        with pytest.raises(ValueError):
            await storage.branches.update(seeded["branch"].id, {"colour": "red"})

    async def test_unique_violation(self, storage, seeded):
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.pos_devices.insert({"customer_id": seeded["customer"].id, "device_code": "POS-0001"})
        assert exc_info.value.reason == "unique"

    async def test_list_filters_and_ordering(self, storage, seeded):
        customer_id = seeded["customer"].id
        await storage.pos_devices.insert({"customer_id": customer_id, "device_code": "POS-0003", "status": "offline"})
        await storage.pos_devices.insert({"customer_id": customer_id, "device_code": "POS-0002", "status": "offline"})

        offline = await storage.pos_devices.list({"status": "offline"}, order_by="device_code")
        assert [d.device_code for d in offline] == ["POS-0002", "POS-0003"]

        several = await storage.pos_devices.list({"status": ["active", "maintenance"]})
        assert [d.device_code for d in several] == ["POS-0001"]

        assert len(await storage.pos_devices.by_customer(customer_id)) == 3


@pytest.mark.asyncio
class TestReferentialIntegrity:
    async def test_device_for_unknown_customer_is_rejected(self, storage):
        """Nothing is persisted when the referenced customer does not exist."""
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.pos_devices.insert({"customer_id": str(uuid.uuid4()), "device_code": "POS-X"})
        assert exc_info.value.reason == "foreign_key"
        assert await storage.pos_devices.list() == []

    async def test_deleting_referenced_branch_is_rejected(self, storage, seeded):
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.branches.delete(seeded["branch"].id)
        assert exc_info.value.reason == "foreign_key"
        assert await storage.branches.get(seeded["branch"].id) is not None

    async def test_missing_required_field(self, storage):
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.branches.insert({"name": "No code", "type": "branch"})
        assert exc_info.value.reason == "not_null"

    async def test_malformed_reference_is_invalid_value(self, storage):
        with pytest.raises(IntegrityViolation) as exc_info:
            await storage.pos_devices.insert({"customer_id": "customer-1", "device_code": "POS-Y"})
        assert exc_info.value.reason == "invalid_value"


@pytest.mark.asyncio
class TestTransactions:
    async def test_between_filters_by_device_and_range_newest_first(self, storage, seeded):
        device_id = seeded["device"].id
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        for day in range(5):
            await storage.transactions.insert(
                {"pos_device_id": device_id, "amount": 1000 * (day + 1), "transaction_date": base + timedelta(days=day)}
            )

        rows = await storage.transactions.between(base + timedelta(days=1), base + timedelta(days=3), device_id)
        assert [t.amount for t in rows] == [4000, 3000, 2000]
        assert await storage.transactions.between(pos_device_id=str(uuid.uuid4())) == []

    async def test_transactions_are_immutable(self, storage, seeded):
        tx = await storage.transactions.insert({"pos_device_id": seeded["device"].id, "amount": 500})
        with pytest.raises(IntegrityViolation):
            await storage.transactions.update(tx.id, {"amount": 1})
        with pytest.raises(IntegrityViolation):
            await storage.transactions.delete(tx.id)
        assert (await storage.transactions.get(tx.id)).amount == 500


@pytest.mark.asyncio
class TestEntityQueries:
    async def test_customer_search(self, storage, seeded):
        await storage.customers.insert(
            {"shop_name": "Tabriz Pharmacy", "owner_name": "Sara Rahimi", "phone": "09149990000", "business_type": "Pharmacy"}
        )
        assert [c.shop_name for c in await storage.customers.search("golestan")] == ["Golestan Bakery"]
        assert [c.shop_name for c in await storage.customers.search("RAHIMI")] == ["Tabriz Pharmacy"]
        assert [c.shop_name for c in await storage.customers.search("999")] == ["Tabriz Pharmacy"]
        assert await storage.customers.search("golestan", {"business_type": "Pharmacy"}) == []

    async def test_alerts_newest_first_and_unread(self, storage):
        first = await storage.alerts.insert({"title": "A", "message": "first", "type": "info"})
        second = await storage.alerts.insert(
            {"title": "B", "message": "second", "type": "warning", "created_at": first.created_at + timedelta(seconds=1)}
        )
        assert [a.id for a in await storage.alerts.list()] == [second.id, first.id]
        assert first.priority == "medium"
        assert first.is_read is False

        read = await storage.alerts.mark_read(first.id)
        assert read.is_read is True
        assert [a.id for a in await storage.alerts.unread()] == [second.id]
        assert (await storage.alerts.mark_read(first.id)).is_read is True

    async def test_users_by_username(self, storage):
        await storage.users.insert({"username": "admin", "password": "x", "name": "Admin", "role": "admin"})
        assert (await storage.users.get_by_username("admin")).role == "admin"
        assert await storage.users.get_by_username("nobody") is None

    async def test_employees_by_branch(self, storage, seeded):
        branch_id = seeded["branch"].id
        await storage.employees.insert({"employee_code": "EMP001", "name": "Ali", "position": "Tech", "branch_id": branch_id})
        await storage.employees.insert({"employee_code": "EMP002", "name": "Reza", "position": "Tech"})
        assert [e.employee_code for e in await storage.employees.by_branch(branch_id)] == ["EMP001"]
