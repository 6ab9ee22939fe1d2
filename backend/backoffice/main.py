from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.core.config import settings
from backoffice.core.errors import register_exception_handlers
from backoffice.core.logging_config import configure_logging
from backoffice.db.session import dispose_engine
import backoffice.models  # noqa: F401  # force model registration

from backoffice.api.v1.context import router as context_router
from backoffice.api.v1.tenant_users import router as tenant_users_router
from backoffice.api.v1.usage import router as usage_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_engine()


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="SMMM Back-office API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "backoffice"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    # Routers
    app.include_router(context_router, prefix="/api/v1")
    app.include_router(tenant_users_router, prefix="/api/v1")
    app.include_router(usage_router, prefix="/api/v1")

    return app


app = create_application()
