from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from underwriter.api.v1 import api_router
from underwriter.core.errors import register_exception_handlers
from underwriter.core.health import APP_VERSION
from underwriter.core.limiter import limiter
from underwriter.core.logging import configure_logging
from underwriter.core.response_envelope import register_response_envelope
from underwriter.core.settings import settings
from underwriter.events import register_event_handlers
from underwriter.middlewares.request_context import RequestContextMiddleware
from underwriter.middlewares.security_headers import SecurityHeadersMiddleware


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Loan Underwriter", version=APP_VERSION)
    register_exception_handlers(app)
    register_response_envelope(app)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.enable_hsts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
