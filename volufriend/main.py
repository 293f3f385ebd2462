from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import Settings, settings as default_settings
from .errors import ServiceError
from .logging import RequestIdMiddleware, setup_logging, structlog
from .auth.router import router as auth_router
from .routes.attendance import router as attendance_router
from .routes.causes import router as causes_router
from .routes.events import router as events_router
from .routes.home_org import router as home_org_router
from .routes.messages import router as messages_router
from .routes.notifications import router as notifications_router
from .routes.organizations import router as organizations_router
from .routes.reports import router as reports_router
from .routes.signups import router as signups_router
from .routes.users import router as users_router
from .routes.volunteers import router as volunteers_router
from .services.home_org import HomeOrgService
from .services.notifications import NotificationDispatcher, build_dispatcher
from .services.reminders import ReminderScheduler
from .services.signups import SignupReconciler
from .services.volunteers import KeyedLocks, VolunteerResolver
from .store.factory import build_store
from .store.provider import DocumentStore


log = structlog.get_logger("volufriend")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level, service=settings.app_name)
    app = FastAPI(title=settings.app_name)

    # Services
    store = store or build_store(settings)
    dispatcher = dispatcher or build_dispatcher(settings)
    scheduler = scheduler or AsyncIOScheduler(timezone=settings.tz_default)
    locks = KeyedLocks()
    resolver = VolunteerResolver(store, locks)
    app.state.settings = settings
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.scheduler = scheduler
    app.state.resolver = resolver
    app.state.reconciler = SignupReconciler(store, resolver)
    app.state.reminders = ReminderScheduler(scheduler, store, dispatcher, settings)
    # org_users upserts and volunteer upserts share one (user, org) lock table
    app.state.home_org = HomeOrgService(store, resolver, dispatcher, locks)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Errors
    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            log.error("request_failed", error=exc.code, message=exc.message, applied=getattr(exc, "applied", None))
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "message": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        log.exception("unhandled_error", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "internal_error", "message": "Internal Server Error"})

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(organizations_router)
    app.include_router(causes_router)
    app.include_router(home_org_router)
    app.include_router(volunteers_router)
    app.include_router(events_router)
    app.include_router(signups_router)
    app.include_router(attendance_router)
    app.include_router(reports_router)
    app.include_router(messages_router)
    app.include_router(notifications_router)

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    async def _startup():
        if not scheduler.running:
            scheduler.start()
        log.info("startup", environment=settings.environment, store=settings.store_provider)

    @app.on_event("shutdown")
    async def _shutdown():
        if scheduler.running:
            scheduler.shutdown(wait=False)
        store.close()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
