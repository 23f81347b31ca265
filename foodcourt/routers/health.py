from collections.abc import Callable
from typing import Literal

from fastapi import APIRouter, Response, status
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from foodcourt.config import settings
from foodcourt.db.session import SessionLocal, engine
from foodcourt.observability import log_event
from foodcourt.schemas.health import HealthResponse, ReadinessDependency, ReadinessResponse

ReadinessStatus = Literal["ok", "error"]

# Tables an order cannot be placed and paid without.
REQUIRED_TABLES = ("merchants", "menus", "buyer_sessions", "orders", "order_payments")

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        service=settings.app_name,
        payment_gateway_configured=bool(settings.xendit_api_key),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(response: Response) -> ReadinessResponse:
    dependencies = [
        ReadinessDependency(name="database", status=database_dependency_status(SessionLocal)),
    ]
    if dependencies[0].status == "ok":
        dependencies.append(ReadinessDependency(name="schema", status=schema_status(engine)))

    ready = all(dependency.status == "ok" for dependency in dependencies)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="ok" if ready else "degraded", dependencies=dependencies)


def database_dependency_status(session_factory: Callable[[], Session]) -> ReadinessStatus:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event("readiness_dependency_check_failed", dependency="database", error=str(exc))
        return "error"
    return "ok"


def schema_status(bind: Engine) -> ReadinessStatus:
    try:
        existing = set(inspect(bind).get_table_names())
    except SQLAlchemyError as exc:
        log_event("readiness_dependency_check_failed", dependency="schema", error=str(exc))
        return "error"
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        log_event("readiness_schema_incomplete", missing_tables=missing)
        return "error"
    return "ok"
