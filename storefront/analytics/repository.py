"""
Accès aux tables analytics_events / analytics_sessions (client service role).
"""
from typing import Any, Dict, Optional

from storefront.infra.supabase_client import get_service_supabase

EVENTS_TABLE = "analytics_events"
SESSIONS_TABLE = "analytics_sessions"

def insert_event(event: Dict[str, Any]) -> None:
    get_service_supabase().table(EVENTS_TABLE).insert(event).execute()

def upsert_session(session: Dict[str, Any]) -> None:
    get_service_supabase().table(SESSIONS_TABLE).upsert(session, on_conflict="session_id").execute()

def get_session(session_id: str) -> Optional[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table(SESSIONS_TABLE)
        .select("page_views")
        .eq("session_id", session_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def update_session(session_id: str, fields: Dict[str, Any]) -> None:
    get_service_supabase().table(SESSIONS_TABLE).update(fields).eq("session_id", session_id).execute()
