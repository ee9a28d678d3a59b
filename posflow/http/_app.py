"""
FastAPI app — the surface a register UI calls into.

    app = create_app(MemoryCatalog(), CheckoutOrchestrator(MemoryOrderService()))
"""

import uuid
from typing import Any

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from kungfu import Error, Ok, Result
from loguru import logger

from posflow.cart import base_item_name, build_lines
from posflow.checkout import CheckoutOrchestrator, CheckoutSession, CheckoutState
from posflow.combo import validate
from posflow.config import get_settings
from posflow.http._schemas import (
    CreateSessionIn,
    CustomerIn,
    ErrorOut,
    MenuItemOut,
    PaymentIn,
    ReceiptOut,
    SelectionIn,
    SessionOut,
)
from posflow.menu import Category, MenuCatalog, load_snapshot
from posflow.pricing import PricingTables, load_price_book

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ApiError(Exception):
    def __init__(self, status: int, body: ErrorOut) -> None:
        super().__init__(body.message)
        self.status = status
        self.body = body


def _fail(error: Any) -> ApiError:
    status, body = ErrorOut.from_domain(error)
    return ApiError(status, body)


def _unwrap[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise _fail(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Session registry
# ═══════════════════════════════════════════════════════════════════════════════


class SessionRegistry:
    """
    Open sessions of this process, by id.

    Completed and abandoned sessions are closed; their ids then 404.
    """

    def __init__(self, orchestrator: CheckoutOrchestrator) -> None:
        self._orchestrator = orchestrator
        self._sessions: dict[str, CheckoutSession] = {}

    def open(self, body: CreateSessionIn) -> tuple[str, CheckoutSession]:
        session_id = uuid.uuid4().hex
        session = self._orchestrator.session(body.to_domain())
        self._sessions[session_id] = session
        return session_id, session

    def get(self, session_id: str) -> CheckoutSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise ApiError(404, ErrorOut(code="session_not_found", message=session_id))
        return session

    def close(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        logger.bind(session_id=session_id).info("Session closed")

    def __len__(self) -> int:
        return len(self._sessions)


# ═══════════════════════════════════════════════════════════════════════════════
# create_app()
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(
    catalog: MenuCatalog,
    orchestrator: CheckoutOrchestrator,
    tables: PricingTables | None = None,
) -> fastapi.FastAPI:
    app = fastapi.FastAPI(title="posflow")
    registry = SessionRegistry(orchestrator)
    price_tables = tables if tables is not None else PricingTables.from_settings(get_settings())

    app.state.registry = registry

    @app.exception_handler(ApiError)
    async def _on_api_error(request: fastapi.Request, exc: ApiError) -> JSONResponse:
        if exc.status >= 500:
            logger.warning("{} {} failed: {}", request.method, request.url.path, exc.body.message)
        return JSONResponse(status_code=exc.status, content=exc.body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def _on_invalid_request(request: fastapi.Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(str(e.get("msg", "")) for e in exc.errors())
        body = ErrorOut(code="invalid_request", message=message)
        return JSONResponse(status_code=422, content=body.model_dump())

    # ─── Menu ────────────────────────────────────────────────────────────────

    @app.get("/menu/{category}")
    async def get_menu(category: Category, available_only: bool = False) -> list[MenuItemOut]:
        snapshot = _unwrap(await load_snapshot(catalog))
        items = snapshot.available(category) if available_only else snapshot.in_category(category)
        return [MenuItemOut.from_domain(item) for item in items]

    # ─── Sessions ────────────────────────────────────────────────────────────

    @app.post("/sessions", status_code=201)
    async def open_session(body: CreateSessionIn) -> SessionOut:
        session_id, session = registry.open(body)
        logger.bind(session_id=session_id, employee_id=body.employee_id).info("Session opened")
        return SessionOut.from_domain(session_id, session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str) -> SessionOut:
        return SessionOut.from_domain(session_id, registry.get(session_id))

    @app.post("/sessions/{session_id}/lines")
    async def add_lines(session_id: str, body: SelectionIn) -> SessionOut:
        session = registry.get(session_id)
        snapshot = _unwrap(await load_snapshot(catalog))
        selections = _unwrap(validate(body.to_domain(snapshot), snapshot))
        names = [base_item_name(s) for s in selections]
        book = _unwrap(await load_price_book(catalog, price_tables, names))
        lines = _unwrap(await build_lines(selections, book, catalog))
        _unwrap(session.add_lines(lines))
        return SessionOut.from_domain(session_id, session)

    @app.delete("/sessions/{session_id}/lines/{index}")
    async def remove_line(session_id: str, index: int) -> SessionOut:
        session = registry.get(session_id)
        try:
            _unwrap(session.remove_line(index))
        except IndexError:
            raise ApiError(404, ErrorOut(code="line_not_found", message=f"No line {index}")) from None
        return SessionOut.from_domain(session_id, session)

    @app.post("/sessions/{session_id}/checkout")
    async def begin_checkout(session_id: str) -> SessionOut:
        session = registry.get(session_id)
        _unwrap(session.begin_checkout())
        return SessionOut.from_domain(session_id, session)

    @app.post("/sessions/{session_id}/payment")
    async def select_payment(session_id: str, body: PaymentIn) -> SessionOut:
        session = registry.get(session_id)
        _unwrap(session.select_payment(body.method))
        return SessionOut.from_domain(session_id, session)

    @app.post("/sessions/{session_id}/customer")
    async def provide_customer(session_id: str, body: CustomerIn) -> SessionOut:
        session = registry.get(session_id)
        _unwrap(session.provide_customer(body.to_domain()))
        return SessionOut.from_domain(session_id, session)

    @app.post("/sessions/{session_id}/finalize")
    async def finalize(session_id: str) -> ReceiptOut:
        session = registry.get(session_id)
        receipt = _unwrap(await session.finalize())
        registry.close(session_id)
        return ReceiptOut.from_domain(receipt)

    @app.post("/sessions/{session_id}/cancel")
    async def cancel(session_id: str) -> SessionOut:
        session = registry.get(session_id)
        _unwrap(session.cancel())
        return SessionOut.from_domain(session_id, session)

    @app.post("/sessions/{session_id}/abandon")
    async def abandon(session_id: str) -> SessionOut:
        session = registry.get(session_id)
        _unwrap(session.abandon())
        registry.close(session_id)
        return SessionOut.from_domain(session_id, session)

    @app.delete("/sessions/{session_id}", status_code=204)
    async def close_session(session_id: str) -> None:
        session = registry.get(session_id)
        if session.state != CheckoutState.COMPLETE:
            _unwrap(session.abandon())
        registry.close(session_id)

    return app


def demo_app() -> fastapi.FastAPI:
    """
    App over the in-memory backends, configured from Settings.

        uvicorn --factory posflow.http:demo_app
    """
    from posflow.backends import MemoryCatalog, MemoryOrderService
    from posflow.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    orchestrator = CheckoutOrchestrator.from_settings(MemoryOrderService(), settings)
    return create_app(MemoryCatalog(), orchestrator, PricingTables.from_settings(settings))


__all__ = ("ApiError", "SessionRegistry", "create_app", "demo_app")
