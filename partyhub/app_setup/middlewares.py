"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS, TrustedHost et confiance en X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité et CSP (stricte pour l'API, élargie pour /docs).
- register_no_cache_middleware: empêche la mise en cache des réponses admin et espace utilisateur.
- register_force_https_middleware: force la redirection HTTPS (derrière proxy).
L’ordre d’ajout compte: le middleware HTTPS est ajouté en dernier pour s’exécuter en premier.
"""
from fastapi import Request, FastAPI
from fastapi.responses import RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
from partyhub.config import SUPABASE_URL, HTTPS_ONLY, CORS_ORIGINS, ALLOWED_HOSTS

NO_CACHE_PREFIXES = ("/admin", "/api/v1/dashboard", "/api/v1/profile")
DOCS_PREFIXES = ("/docs", "/redoc")
SWAGGER_CDNS = ("https://cdn.jsdelivr.net", "https://unpkg.com")

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

# Réponses JSON: aucun contenu actif à charger
API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"

def docs_csp() -> str:
    """CSP des pages Swagger/ReDoc (assets servis depuis les CDNs)."""
    cdns = " ".join(SWAGGER_CDNS)
    connect = " ".join(["'self'"] + ([SUPABASE_URL] if SUPABASE_URL else []))
    return (
        "default-src 'self'; object-src 'none'; frame-ancestors 'none'; "
        "img-src 'self' data: https://fastapi.tiangolo.com; "
        f"style-src 'self' 'unsafe-inline' {cdns}; "
        f"script-src 'self' 'unsafe-inline' {cdns}; "
        f"connect-src {connect}"
    )

def register_basic_middlewares(app: FastAPI) -> None:
    """
    - CORSMiddleware: origines du front; l'authentification passe par l'en-tête Bearer,
      les credentials ne sont autorisés que pour une liste d'origines explicite.
    - TrustedHostMiddleware: limite les hôtes acceptés.
    - ProxyHeadersMiddleware: x-forwarded-* (Render, Nginx...).
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if HTTPS_ONLY:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        is_docs = request.url.path.startswith(DOCS_PREFIXES)
        response.headers["Content-Security-Policy"] = docs_csp() if is_docs else API_CSP
        return response

def register_no_cache_middleware(app: FastAPI) -> None:
    """GET sur /admin, /api/v1/dashboard et /api/v1/profile: Cache-Control no-store."""
    @app.middleware("http")
    async def no_cache_for_protected(request: Request, call_next):
        response = await call_next(request)
        if request.method == "GET" and request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response

def register_force_https_middleware(app: FastAPI) -> None:
    """Redirige HTTP -> HTTPS (301) lorsqu’un proxy place x-forwarded-proto=http."""
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if request.headers.get("x-forwarded-proto") == "http":
            return RedirectResponse(str(request.url.replace(scheme="https")), status_code=301)
        return await call_next(request)
