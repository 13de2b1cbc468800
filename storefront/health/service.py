"""
Diagnostic de la base: le checkout lit photos, écrit payments, le webhook écrit photo_purchases.
"""
import logging
import socket
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import storefront.infra.supabase_client as supabase_client
from storefront import config

logger = logging.getLogger(__name__)

TABLES = ("photos", "payments", "photo_purchases")

def _resolve_host(hostname: Optional[str]) -> Dict[str, Any]:
    if not hostname:
        return {"dns_ok": None, "dns_error": "SUPABASE_URL non configurée"}
    try:
        socket.getaddrinfo(hostname, 443)
        return {"dns_ok": True, "dns_error": None}
    except OSError as e:
        return {"dns_ok": False, "dns_error": str(e)}

def _check_table(client, table: str) -> Dict[str, Any]:
    try:
        client.table(table).select("*").limit(1).execute()
        return {"ok": True}
    except Exception as e:
        logger.warning("health.supabase table=%s error=%s", table, e)
        return {"ok": False, "error": str(e)}

def health_supabase_info() -> Dict[str, Any]:
    """
    connect_ok: client créé et chaque table lisible.
    tables: {nom: {ok, error?}} pour repérer une table manquante ou une RLS trop stricte.
    """
    hostname = urlparse(config.SUPABASE_URL).hostname if config.SUPABASE_URL else None
    info: Dict[str, Any] = {"hostname": hostname, **_resolve_host(hostname), "tables": {}, "error": None}
    try:
        client = supabase_client.get_supabase()
    except Exception as e:
        info.update(connect_ok=False, error=str(e))
        return info
    info["tables"] = {t: _check_table(client, t) for t in TABLES}
    info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    return info
