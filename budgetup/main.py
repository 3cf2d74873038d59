from fastapi import FastAPI

from budgetup.errors import register_error_handlers
from budgetup.logging_config import configure_logging
from budgetup.routes.audit_logs import router as audit_logs_router
from budgetup.routes.auth import router as auth_router
from budgetup.routes.health import router as health_router
from budgetup.routes.invitations import router as invitations_router
from budgetup.routes.organizations import router as organizations_router
from budgetup.routes.permissions import router as permissions_router

def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="budgetup-api", version="0.1.0")
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(organizations_router)
    app.include_router(invitations_router)
    app.include_router(permissions_router)
    app.include_router(audit_logs_router)
    return app

app = create_app()
