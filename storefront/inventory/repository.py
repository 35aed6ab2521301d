"""
Accès aux tables inventory / inventory_adjustments.

Supabase par défaut; si Supabase n'est pas configuré ou si la table n'existe pas
(42P01), bascule sur un stock en mémoire propre au processus.
"""
import copy
import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from storefront.infra.supabase_client import get_service_supabase
from storefront.inventory.models import initial_inventory, utcnow_iso

logger = logging.getLogger(__name__)

INVENTORY_TABLE = "inventory"
ADJUSTMENTS_TABLE = "inventory_adjustments"
UNDEFINED_TABLE = "42P01"


class SupabaseInventoryStore:
    def list_items(self) -> List[Dict[str, Any]]:
        res = get_service_supabase().table(INVENTORY_TABLE).select("*").order("bundle_name").execute()
        return res.data or []

    def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        res = get_service_supabase().table(INVENTORY_TABLE).select("*").eq("id", item_id).limit(1).execute()
        rows = res.data or []
        return rows[0] if rows else None

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        res = get_service_supabase().table(INVENTORY_TABLE).update(fields).eq("id", item_id).execute()
        rows = res.data or []
        return rows[0] if rows else None

    def insert_adjustment(self, adjustment: Dict[str, Any]) -> None:
        get_service_supabase().table(ADJUSTMENTS_TABLE).insert(adjustment).execute()

    def list_adjustments(self, inventory_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        query = get_service_supabase().table(ADJUSTMENTS_TABLE).select("*")
        if inventory_id:
            query = query.eq("inventory_id", inventory_id)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []


class MemoryInventoryStore:
    """Stock en mémoire (dev / Supabase indisponible), protégé par un verrou."""

    def __init__(self, items: Optional[List[Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._items = {i["id"]: dict(i) for i in (items if items is not None else initial_inventory())}
        self._adjustments: List[Dict[str, Any]] = []

    def list_items(self) -> List[Dict[str, Any]]:
        with self._lock:
            rows = sorted(self._items.values(), key=lambda i: i.get("bundle_name") or "")
            return copy.deepcopy(rows)

    def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(item_id)
            return dict(item) if item else None

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            item.update(fields)
            return dict(item)

    def insert_adjustment(self, adjustment: Dict[str, Any]) -> None:
        with self._lock:
            row = {"id": f"adj-{uuid.uuid4().hex[:12]}", **adjustment}
            self._adjustments.insert(0, row)

    def list_adjustments(self, inventory_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [a for a in self._adjustments if not inventory_id or a.get("inventory_id") == inventory_id]
            return copy.deepcopy(rows[:limit])


_supabase_store = SupabaseInventoryStore()
_memory_store = MemoryInventoryStore()

def reset_memory_store(items: Optional[List[Dict[str, Any]]] = None) -> MemoryInventoryStore:
    global _memory_store
    _memory_store = MemoryInventoryStore(items)
    return _memory_store

def _call(method: str, *args, **kwargs):
    try:
        return getattr(_supabase_store, method)(*args, **kwargs)
    except RuntimeError as e:
        logger.warning("inventory: Supabase indisponible (%s), stock en mémoire", e)
    except APIError as e:
        if getattr(e, "code", None) != UNDEFINED_TABLE:
            raise
        logger.warning("inventory: table absente, stock en mémoire")
    return getattr(_memory_store, method)(*args, **kwargs)

def list_items() -> List[Dict[str, Any]]:
    return _call("list_items")

def get_item(item_id: str) -> Optional[Dict[str, Any]]:
    return _call("get_item", item_id)

def update_item(item_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _call("update_item", item_id, {**fields, "updated_at": utcnow_iso()})

def log_adjustment(adjustment: Dict[str, Any]) -> None:
    _call("insert_adjustment", {**adjustment, "created_at": utcnow_iso()})

def list_adjustments(inventory_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    return _call("list_adjustments", inventory_id, limit)
