import pytest
from unittest.mock import MagicMock
from postgrest.exceptions import APIError

from storefront.inventory import repository as inventory_repository
from storefront.inventory import service as inventory_service
from storefront.inventory.models import available_stock, initial_inventory, stock_status

def test_initial_inventory_covers_every_bundle():
    items = {i["bundle_id"]: i for i in initial_inventory()}
    assert set(items) == {"card-only", "love-pack", "deluxe-love"}
    assert items["love-pack"]["id"] == "inv-love-pack"
    assert items["love-pack"]["reserved"] == 2

@pytest.mark.parametrize("quantity,reserved,threshold,expected", [
    (25, 0, 10, "in_stock"),
    (11, 1, 10, "low_stock"),
    (8, 0, 10, "low_stock"),
    (2, 2, 10, "out_of_stock"),
    (0, 0, 0, "out_of_stock"),
])
def test_stock_status(quantity, reserved, threshold, expected):
    item = {"quantity": quantity, "reserved": reserved, "low_stock_threshold": threshold}
    assert stock_status(item) == expected

def test_available_stock_never_negative():
    assert available_stock({"quantity": 1, "reserved": 3}) == 0

def test_list_inventory_adds_status():
    items = {i["bundle_id"]: i for i in inventory_service.list_inventory()}
    assert items["love-pack"]["available"] == 13
    assert items["deluxe-love"]["stock_status"] == "low_stock"

def test_set_quantity_logs_adjustment():
    item = inventory_service.set_quantity("inv-card-only", 30, "Restock")
    assert item["quantity"] == 30

    adjustments = inventory_service.get_adjustments("inv-card-only")
    assert len(adjustments) == 1
    assert adjustments[0]["adjustment_type"] == "set"
    assert adjustments[0]["quantity_change"] == 5
    assert adjustments[0]["previous_quantity"] == 25
    assert adjustments[0]["reason"] == "Restock"

def test_set_quantity_floors_at_zero():
    item = inventory_service.set_quantity("inv-deluxe-love", -4)
    assert item["quantity"] == 0
    assert item["stock_status"] == "out_of_stock"

def test_set_quantity_unknown_item():
    assert inventory_service.set_quantity("inv-nope", 3) is None
    assert inventory_service.get_adjustments() == []

def test_adjust_add_and_remove():
    inventory_service.adjust("inv-card-only", 5, "add")
    item = inventory_service.adjust("inv-card-only", 40, "remove")
    assert item["quantity"] == 0

    reasons = [a["reason"] for a in inventory_service.get_adjustments("inv-card-only")]
    # plus récent en premier
    assert reasons == ["Removed 40 units", "Added 5 units"]

def test_adjust_rejects_unknown_type():
    with pytest.raises(ValueError):
        inventory_service.adjust("inv-card-only", 1, "set")

def test_update_threshold_recomputes_status():
    item = inventory_service.update_threshold("inv-card-only", 30)
    assert item["low_stock_threshold"] == 30
    assert item["stock_status"] == "low_stock"
    assert inventory_service.update_threshold("inv-card-only", -1)["low_stock_threshold"] == 0

def test_low_stock_items():
    ids = [i["id"] for i in inventory_service.low_stock_items()]
    assert ids == ["inv-deluxe-love"]

def test_missing_table_falls_back_to_memory(monkeypatch):
    db = MagicMock()
    db.table.return_value.select.return_value.order.return_value.execute.side_effect = APIError(
        {"code": "42P01", "message": 'relation "inventory" does not exist'}
    )
    monkeypatch.setattr("storefront.inventory.repository.get_service_supabase", lambda: db)
    assert len(inventory_repository.list_items()) == 3

def test_other_database_errors_propagate(monkeypatch):
    db = MagicMock()
    db.table.return_value.select.return_value.order.return_value.execute.side_effect = APIError(
        {"code": "42501", "message": "permission denied"}
    )
    monkeypatch.setattr("storefront.inventory.repository.get_service_supabase", lambda: db)
    with pytest.raises(APIError):
        inventory_repository.list_items()

def test_supabase_rows_used_when_available(monkeypatch):
    db = MagicMock()
    db.table.return_value.select.return_value.order.return_value.execute.return_value.data = [
        {"id": "inv-x", "quantity": 3, "reserved": 0, "low_stock_threshold": 1}
    ]
    monkeypatch.setattr("storefront.inventory.repository.get_service_supabase", lambda: db)
    assert [i["id"] for i in inventory_service.list_inventory()] == ["inv-x"]
    db.table.assert_called_with("inventory")
