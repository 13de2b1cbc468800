"""
Lifespan FastAPI: limiteur de débit du checkout.
Drapeaux lus au démarrage (tests):
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: aucun Redis, limitation désactivée
  - USE_FAKE_REDIS_FOR_TESTS=1: fakeredis en mémoire
  - LOCAL_RATE_LIMIT_FALLBACK=1: compteur en mémoire si Redis est indisponible
"""
import os
import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront import config

logger = logging.getLogger("uvicorn.error")

def _flag(name: str) -> bool:
    return os.getenv(name) == "1"

def _limiter_redis():
    if _flag("USE_FAKE_REDIS_FOR_TESTS"):
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    return redis.from_url(config.RATE_LIMIT_REDIS_URL, encoding="utf-8", decode_responses=True)

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.rate_limit_enabled = False
    if _flag("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"):
        logger.info("rate_limit disabled (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)")
        yield
        return

    started = False
    try:
        await FastAPILimiter.init(_limiter_redis())
        app.state.rate_limit_enabled = started = True
        logger.info("rate_limit enabled backend=redis")
    except Exception as e:
        # Un Redis absent ne doit pas empêcher les paiements
        app.state.rate_limit_enabled = _flag("LOCAL_RATE_LIMIT_FALLBACK")
        logger.warning("rate_limit init failed fallback=%s error=%s", app.state.rate_limit_enabled, e)

    try:
        yield
    finally:
        if started:
            await FastAPILimiter.close()
