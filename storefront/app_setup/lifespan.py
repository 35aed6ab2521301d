"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Active le rate limiting fastapi-limiter (compteurs pyrate-limiter en mémoire du process).
- Variables d’environnement supportées:
  - DISABLE_RATE_LIMIT_INIT_FOR_TESTS=1: désactive complètement (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: force le fallback local (fenêtre glissante simple)
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le rate limiting.
    - Les logs indiquent l’état effectif (enabled/disabled) pour observabilité.
    """
    logger = logging.getLogger("uvicorn.error")
    if os.getenv("DISABLE_RATE_LIMIT_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_RATE_LIMIT_INIT_FOR_TESTS")
    elif os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
        app.state.rate_limit_enabled = True
        logger.warning("Rate limiting using local in-memory fallback")
    else:
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")

    yield

    app.state._rl_store = {}
