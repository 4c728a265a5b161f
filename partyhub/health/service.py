"""Diagnostic de la connexion Supabase (route /health/supabase)."""
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse
import socket
import time
import logging
import partyhub.infra.supabase_client as supabase_client
from partyhub.config import SUPABASE_URL

logger = logging.getLogger(__name__)

PROBED_TABLES = ("service_packages", "package_features", "bookings", "payments", "profiles", "contact_submissions")

def _resolve(hostname: Optional[str]) -> Tuple[Optional[bool], Optional[str]]:
    if not hostname:
        return None, None
    try:
        socket.getaddrinfo(hostname, 443)
        return True, None
    except OSError as e:
        return False, str(e)

def _check_table(client, name: str) -> Dict[str, Any]:
    started = time.perf_counter()
    try:
        res = client.table(name).select("id").limit(1).execute()
    except Exception as e:
        return {"ok": False, "error": str(e)}
    # RLS: 0 ligne visible avec la clé anonyme reste un succès
    return {"ok": True, "rows": len(res.data or []), "ms": round((time.perf_counter() - started) * 1000, 1)}

def health_supabase_info() -> Dict[str, Any]:
    """Résolution DNS de l'hôte Supabase puis lecture d'une ligne par table (clé anonyme)."""
    hostname = urlparse(SUPABASE_URL).hostname if SUPABASE_URL else None
    dns_ok, dns_error = _resolve(hostname)
    info: Dict[str, Any] = {
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_supabase()
    except Exception as e:
        logger.exception("health.service.health_supabase_info: client init failed")
        info["error"] = str(e)
        return info
    info["tables"] = {t: _check_table(client, t) for t in PROBED_TABLES}
    info["connect_ok"] = any(t["ok"] for t in info["tables"].values())
    return info
