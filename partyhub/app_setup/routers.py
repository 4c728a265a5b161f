"""
Registre central des routers (API v1, admin, health).
"""
from fastapi import FastAPI
from partyhub.auth.views import api_router as auth_api_router
from partyhub.packages import views as packages_views
from partyhub.bookings import views as bookings_views
from partyhub.payments import views as payments_views
from partyhub.profiles import views as profiles_views
from partyhub.contact import views as contact_views
from partyhub.admin.views import router as admin_router
from partyhub.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """L’ordre n’a pas d’impact: les chemins sont séparés par préfixes."""
    # API v1
    app.include_router(auth_api_router)
    app.include_router(packages_views.router)
    app.include_router(bookings_views.router)
    app.include_router(payments_views.router)
    app.include_router(profiles_views.router)
    app.include_router(contact_views.router)
    # Admin
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)
