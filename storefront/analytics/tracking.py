"""
Suivi first-party (événements et sessions visiteurs stockés dans Supabase).

- Chaque étape est indépendante: un échec est journalisé et n'interrompt pas les suivantes
- session_start (ou create_session) crée/actualise la session avec ses UTM
- page_view incrémente page_views
- Les étapes du tunnel posent des drapeaux cumulatifs (viewed_product ... completed_purchase)
"""
import logging
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

from storefront.analytics import repository

logger = logging.getLogger(__name__)

_FUNNEL_STEPS = ("viewed_product", "added_to_cart", "started_checkout", "completed_purchase")
FUNNEL_EVENTS = {
    "product_view": 1,
    "add_to_cart": 2,
    "checkout_start": 3,
    "purchase": 4,
}

def funnel_updates(event_type: str) -> Dict[str, bool]:
    depth = FUNNEL_EVENTS.get(event_type, 0)
    return {step: True for step in _FUNNEL_STEPS[:depth]}

def track_event(
    event_type: str,
    session_id: str,
    visitor_id: Optional[str] = None,
    page_path: Optional[str] = None,
    device_type: Optional[str] = None,
    referrer: Optional[str] = None,
    event_data: Optional[Dict[str, Any]] = None,
    create_session: bool = False,
) -> None:
    try:
        repository.insert_event({
            "event_type": event_type,
            "session_id": session_id,
            "visitor_id": visitor_id,
            "page_path": page_path,
            "device_type": device_type,
            "referrer": referrer,
            "event_data": event_data,
        })
    except (APIError, RuntimeError) as e:
        logger.error("analytics.track insert failed type=%s: %s", event_type, e)

    data = event_data or {}
    if create_session or event_type == "session_start":
        try:
            repository.upsert_session({
                "session_id": session_id,
                "visitor_id": visitor_id,
                "device_type": device_type,
                "referrer": referrer,
                "landing_page": page_path,
                "utm_source": data.get("utm_source"),
                "utm_medium": data.get("utm_medium"),
                "utm_campaign": data.get("utm_campaign"),
                "page_views": 1,
            })
        except (APIError, RuntimeError) as e:
            logger.error("analytics.track session upsert failed session=%s: %s", session_id, e)

    if event_type == "page_view":
        try:
            session = repository.get_session(session_id)
            if session:
                repository.update_session(session_id, {"page_views": int(session.get("page_views") or 0) + 1})
        except (APIError, RuntimeError) as e:
            logger.warning("analytics.track page_views update failed session=%s: %s", session_id, e)

    updates = funnel_updates(event_type)
    if updates:
        try:
            repository.update_session(session_id, updates)
        except (APIError, RuntimeError) as e:
            logger.error("analytics.track funnel update failed session=%s: %s", session_id, e)
