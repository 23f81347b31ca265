import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from foodcourt.config import allowed_origins, ensure_secure_runtime_settings, settings
from foodcourt.db.migration_check import assert_db_is_up_to_date, maybe_create_schema
from foodcourt.db.session import SessionLocal, engine
from foodcourt.errors import install_exception_handlers
from foodcourt.observability import configure_logging, log_event, set_request_id
from foodcourt.routers.admin import router as admin_router
from foodcourt.routers.health import router as health_router
from foodcourt.routers.merchant_dashboard import router as merchant_dashboard_router
from foodcourt.routers.merchants import router as merchants_router
from foodcourt.routers.orders import router as orders_router
from foodcourt.routers.payments import router as payments_router
from foodcourt.routers.sessions import router as sessions_router
from foodcourt.routers.webhooks import router as webhooks_router
from foodcourt.services.admin_service import seed_admin_from_settings


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import foodcourt.models  # noqa: F401 (register all SQLAlchemy models)

    configure_logging()
    ensure_secure_runtime_settings()
    if settings.require_migrations:
        assert_db_is_up_to_date(engine)
    else:
        maybe_create_schema(engine)

    with SessionLocal() as db:
        seed_admin_from_settings(db)
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Food court ordering API: buyer sessions, carts, orders and Xendit payments",
    lifespan=lifespan,
)

install_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

    response.headers["X-Request-ID"] = request_id
    log_event(
        "http_request",
        order_id=request.path_params.get("order_id"),
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=elapsed_ms,
    )
    return response


app.include_router(health_router)
app.include_router(merchant_dashboard_router)
app.include_router(merchants_router)
app.include_router(sessions_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(webhooks_router)
app.include_router(admin_router)
