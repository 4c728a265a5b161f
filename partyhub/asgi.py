"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe `partyhub.asgi:app`.
- Toute la configuration FastAPI est centralisée dans partyhub.app_setup.factory.
"""

from partyhub.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "partyhub.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
