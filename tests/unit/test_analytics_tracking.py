from unittest.mock import MagicMock

import pytest

from storefront.analytics import repository, tracking

@pytest.mark.parametrize("event_type,expected", [
    ("page_view", {}),
    ("product_view", {"viewed_product": True}),
    ("add_to_cart", {"viewed_product": True, "added_to_cart": True}),
    ("purchase", {"viewed_product": True, "added_to_cart": True,
                  "started_checkout": True, "completed_purchase": True}),
])
def test_funnel_updates(event_type, expected):
    assert tracking.funnel_updates(event_type) == expected

def test_repository_uses_service_client(monkeypatch):
    db = MagicMock()
    monkeypatch.setattr("storefront.analytics.repository.get_service_supabase", lambda: db)

    repository.insert_event({"event_type": "page_view", "session_id": "s"})
    db.table.assert_called_with("analytics_events")
    db.table.return_value.insert.assert_called_once_with({"event_type": "page_view", "session_id": "s"})

    repository.upsert_session({"session_id": "s"})
    db.table.return_value.upsert.assert_called_once_with({"session_id": "s"}, on_conflict="session_id")

def test_get_session_returns_first_row(monkeypatch):
    db = MagicMock()
    chain = db.table.return_value.select.return_value.eq.return_value.limit.return_value
    chain.execute.return_value = MagicMock(data=[{"page_views": 2}])
    monkeypatch.setattr("storefront.analytics.repository.get_service_supabase", lambda: db)

    assert repository.get_session("s") == {"page_views": 2}

def test_track_event_without_supabase_does_not_raise(monkeypatch):
    def _no_supabase():
        raise RuntimeError("Supabase non configuré")

    monkeypatch.setattr("storefront.analytics.repository.get_service_supabase", _no_supabase)
    tracking.track_event("add_to_cart", "s", create_session=True)
