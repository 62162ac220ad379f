"""HTTP surface and composition root for the order service.

`create_app` builds every long-lived collaborator once (engine, session
factory, signer, dispatch queue, stores, worker) and hangs them on
`app.state`. The payment simulation worker runs for the lifetime of the app.

Run with ``uvicorn --factory orderpay.services.api.main:create_app``.
"""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import sessionmaker

from orderpay.common.config import Settings
from orderpay.common.db import create_schema, make_engine, make_session_factory
from orderpay.common.dispatch import DispatchQueue
from orderpay.common.errors import OrderPayError
from orderpay.common.logging import configure_logging, logger, trace_id_ctx
from orderpay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from orderpay.common.serialization import dumps
from orderpay.common.signing import WebhookSigner
from orderpay.common.startup import log_startup_config
from orderpay.common.tracing import instrument_app, setup_tracing
from orderpay.services.orders.idempotency import IdempotencyStore
from orderpay.services.orders.intake import IDEMPOTENCY_HEADER, OrderIntake
from orderpay.services.orders.schemas import OrderResponse
from orderpay.services.orders.service import OrderService
from orderpay.services.payments.payloads import WEBHOOK_PATH
from orderpay.services.payments.webhooks import WebhookReceiver
from orderpay.services.payments.worker import PaymentSimulationWorker


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
    http_client: httpx.AsyncClient | None = None,
    run_worker: bool = True,
) -> FastAPI:
    """Build the FastAPI app and all of its collaborators."""

    settings = settings or Settings()
    configure_logging(settings.service_name, settings.log_level)
    log_startup_config(
        settings,
        [
            "database_url",
            "webhook_base_url",
            "webhook_signature_header",
            "webhook_tolerance_seconds",
            "webhook_shared_secret",
            "payment_simulation_delay_seconds",
        ],
    )
    if settings.tracing_enabled:
        setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)

    if session_factory is None:
        engine = make_engine(settings.database_url)
        create_schema(engine)
        session_factory = make_session_factory(engine)

    service_name = settings.service_name
    signer = WebhookSigner(
        settings.webhook_shared_secret,
        header_name=settings.webhook_signature_header,
        tolerance_seconds=settings.webhook_tolerance_seconds,
    )
    queue = DispatchQueue(service_name)
    orders = OrderService(session_factory, service_name)
    intake = OrderIntake(IdempotencyStore(session_factory, service_name), orders, queue, service_name)
    receiver = WebhookReceiver(signer, orders, session_factory, service_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the payment simulation worker with app lifecycle."""

        client = http_client or httpx.AsyncClient(timeout=settings.webhook_timeout_seconds)
        worker = PaymentSimulationWorker(
            queue,
            signer,
            client,
            base_url=settings.webhook_base_url,
            delay_seconds=settings.payment_simulation_delay_seconds,
            service_name=service_name,
        )
        app.state.worker = worker
        if run_worker:
            worker.start()
        yield
        await worker.stop()
        if http_client is None:
            await client.aclose()

    app = FastAPI(title="OrderPay", lifespan=lifespan)
    if settings.tracing_enabled:
        instrument_app(app)
    app.state.settings = settings
    app.state.queue = queue
    app.state.signer = signer
    app.state.orders = orders
    app.state.intake = intake
    app.state.receiver = receiver

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(service=service_name, route=route, method=method).observe(elapsed)
            http_requests_total.labels(
                service=service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    @app.exception_handler(OrderPayError)
    async def orderpay_error_handler(_: Request, exc: OrderPayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.post("/api/orders")
    async def create_order(request: Request):
        """Create an order once per `Idempotency-Key`, replaying the first response."""

        raw_body = await request.body()
        result = intake.handle(request.headers.get(IDEMPOTENCY_HEADER), raw_body)
        return Response(
            content=result.body,
            status_code=result.status_code,
            media_type="application/json",
            headers=result.headers,
        )

    @app.get("/api/orders")
    async def list_orders(limit: int = 100):
        """Recent orders, newest first."""

        documents = [OrderResponse.model_validate(order).to_document() for order in orders.list_orders(limit)]
        return Response(content=dumps(documents), media_type="application/json")

    @app.get("/api/orders/{order_number}")
    async def get_order(order_number: str):
        order = OrderResponse.model_validate(orders.get(order_number))
        return Response(content=order.to_json(), media_type="application/json")

    @app.post(WEBHOOK_PATH)
    async def receive_payment_webhook(request: Request):
        """Verify and apply a signed payment webhook."""

        raw_body = await request.body()
        receiver.receive(request.headers.get(signer.header_name), raw_body)
        return {"ok": True}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    logger.info("app_created service=%s", service_name)
    return app
