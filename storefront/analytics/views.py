import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storefront.analytics import facebook_capi, tracking
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/analytics", tags=["Analytics API"])

class FBUserData(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None
    externalId: Optional[str] = None
    fbc: Optional[str] = None
    fbp: Optional[str] = None

class FBEventRequest(BaseModel):
    eventName: Optional[str] = None
    eventId: Optional[str] = None
    eventSourceUrl: Optional[str] = None
    userData: Optional[FBUserData] = None
    customData: Optional[Dict[str, Any]] = None

def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for") or ""
    ip = forwarded.split(",")[0].strip()
    return ip or request.headers.get("x-real-ip") or (request.client.host if request.client else None)

@router.post("/fb-event", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def relay_fb_event(req: FBEventRequest, request: Request):
    """
    Relais serveur d'un événement Pixel (même eventId que le client pour la déduplication).
    - 400 si eventName / eventId / eventSourceUrl manquant ou événement inconnu
    - IP et user agent lus dans les en-têtes de la requête
    """
    if not req.eventName or not req.eventId or not req.eventSourceUrl:
        return JSONResponse(
            {"success": False, "error": "Missing required fields: eventName, eventId, eventSourceUrl"},
            status_code=400,
        )
    if req.eventName not in facebook_capi.STANDARD_EVENTS:
        return JSONResponse({"success": False, "error": "Unknown event name"}, status_code=400)

    u = req.userData or FBUserData()
    result = facebook_capi.send_server_event(
        req.eventName,
        req.eventId,
        req.eventSourceUrl,
        {
            "email": u.email,
            "first_name": u.firstName,
            "last_name": u.lastName,
            "phone": u.phone,
            "city": u.city,
            "state": u.state,
            "postal_code": u.postalCode,
            "country": u.country,
            "external_id": u.externalId,
            "fbc": u.fbc,
            "fbp": u.fbp,
            "ip": client_ip(request),
            "user_agent": request.headers.get("user-agent"),
        },
        req.customData,
    )
    return JSONResponse(result)

class TrackEventRequest(BaseModel):
    event_type: Optional[str] = None
    session_id: Optional[str] = None
    visitor_id: Optional[str] = None
    page_path: Optional[str] = None
    device_type: Optional[str] = None
    referrer: Optional[str] = None
    event_data: Optional[Dict[str, Any]] = None
    create_session: bool = False

@router.post("/track", dependencies=[Depends(optional_rate_limit(times=120, seconds=60))])
def track_event(req: TrackEventRequest):
    """
    Enregistre un événement first-party (analytics_events) et met à jour la session.
    - 400 si event_type / session_id manquant
    - Sinon toujours {"success": true}: le suivi ne doit jamais casser le site
    """
    if not req.event_type or not req.session_id:
        return JSONResponse({"error": "Missing required fields: event_type, session_id"}, status_code=400)
    tracking.track_event(
        req.event_type,
        req.session_id,
        visitor_id=req.visitor_id,
        page_path=req.page_path,
        device_type=req.device_type,
        referrer=req.referrer,
        event_data=req.event_data,
        create_session=req.create_session,
    )
    return JSONResponse({"success": True})
