from typing import Any, Dict, List, Optional
from storefront.infra.supabase_client import get_service_supabase
import logging

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
CUSTOMERS_TABLE = "customers"

def find_existing_order(
    stripe_session_id: Optional[str] = None,
    stripe_payment_intent: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Recherche une commande déjà créée pour cette session ou ce payment intent.
    Retourne None si aucun identifiant, aucun résultat, ou erreur de lecture.
    """
    filters = []
    if stripe_session_id:
        filters.append(f"stripe_session_id.eq.{stripe_session_id}")
    if stripe_payment_intent:
        filters.append(f"stripe_payment_intent.eq.{stripe_payment_intent}")
    if not filters:
        return None
    try:
        res = (
            get_service_supabase()
            .table(ORDERS_TABLE)
            .select("id, order_number")
            .or_(",".join(filters))
            .limit(1)
            .execute()
        )
        return (res.data or [None])[0]
    except Exception as e:
        logger.error(f"Erreur find_existing_order: {e}")
        return None

def get_last_order_number() -> Optional[str]:
    res = (
        get_service_supabase()
        .table(ORDERS_TABLE)
        .select("order_number")
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0].get("order_number") if rows else None

def insert_order(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une commande; les erreurs PostgREST (ex: 23505) remontent à l'appelant."""
    res = get_service_supabase().table(ORDERS_TABLE).insert(payload).execute()
    return (res.data or [{}])[0]

def list_orders(status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    query = get_service_supabase().table(ORDERS_TABLE).select("*")
    if status:
        query = query.eq("status", status)
    res = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    return res.data or []

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    res = get_service_supabase().table(ORDERS_TABLE).select("*").eq("id", order_id).limit(1).execute()
    rows = res.data or []
    return rows[0] if rows else None

def update_order(order_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = get_service_supabase().table(ORDERS_TABLE).update(updates).eq("id", order_id).execute()
    rows = res.data or []
    return rows[0] if rows else None

def fetch_order_totals() -> List[Dict[str, Any]]:
    res = get_service_supabase().table(ORDERS_TABLE).select("total, status").execute()
    return res.data or []

def call_upsert_customer_stats(email: str, name: Optional[str], total_spent: int, accepts_marketing: bool) -> None:
    get_service_supabase().rpc(
        "upsert_customer_stats",
        {
            "p_email": email,
            "p_name": name,
            "p_total_spent": total_spent,
            "p_accepts_marketing": accepts_marketing,
        },
    ).execute()

def get_customer(email: str) -> Optional[Dict[str, Any]]:
    res = get_service_supabase().table(CUSTOMERS_TABLE).select("*").eq("email", email).limit(1).execute()
    rows = res.data or []
    return rows[0] if rows else None

def update_customer(email: str, updates: Dict[str, Any]) -> None:
    get_service_supabase().table(CUSTOMERS_TABLE).update(updates).eq("email", email).execute()

def insert_customer(payload: Dict[str, Any]) -> None:
    get_service_supabase().table(CUSTOMERS_TABLE).insert(payload).execute()
