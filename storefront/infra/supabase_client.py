from typing import Optional
from supabase import create_client, Client
from storefront import config

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
            raise RuntimeError("SUPABASE_URL / SUPABASE_ANON_KEY manquants pour get_supabase()")
        _supabase = create_client(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client 'service role' (contourne RLS) pour les écritures serveur:
    commandes, clients, inventaire. Retombe sur le client anon si la clé
    service n'est pas configurée.
    """
    global _service_supabase
    if not config.SUPABASE_SERVICE_KEY:
        return get_supabase()
    if _service_supabase is None:
        _service_supabase = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)
    return _service_supabase
