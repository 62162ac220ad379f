"""Payment provider simulation.

Drains the dispatch queue one job at a time, waits a simulated processing
delay, then calls back into the service with a signed `payment.succeeded`
webhook. Delivery is at-least-once at best: a failed call is logged and the
job dropped, with no retry and no dead-letter. A production payment webhook
contract would need both.
"""

import asyncio
import time
from contextlib import suppress

import httpx

from orderpay.common.dispatch import DispatchQueue, PaymentSimulationJob
from orderpay.common.errors import DeliveryError
from orderpay.common.logging import logger, order_number_ctx
from orderpay.common.metrics import payment_simulation_seconds, webhook_deliveries_total
from orderpay.common.signing import WebhookSigner
from orderpay.services.payments.payloads import WEBHOOK_PATH, build_payment_payload, serialize_payload


class PaymentSimulationWorker:
    """Single consumer of `DispatchQueue` that emits signed payment webhooks."""

    def __init__(
        self,
        queue: DispatchQueue,
        signer: WebhookSigner,
        http_client: httpx.AsyncClient,
        base_url: str,
        delay_seconds: float = 5.0,
        service_name: str = "orderpay",
    ) -> None:
        self.queue = queue
        self.signer = signer
        self.http_client = http_client
        self.webhook_url = f"{base_url.rstrip('/')}{WEBHOOK_PATH}"
        self.delay_seconds = delay_seconds
        self.service_name = service_name
        self._task: asyncio.Task | None = None

    async def deliver(self, job: PaymentSimulationJob) -> httpx.Response:
        """Sign and POST one webhook; raise `DeliveryError` on any failure."""

        body = serialize_payload(build_payment_payload(job))
        headers = {
            self.signer.header_name: self.signer.sign(body),
            "Content-Type": "application/json",
        }
        try:
            response = await self.http_client.post(self.webhook_url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"network error: {exc!r}") from exc
        if not response.is_success:
            raise DeliveryError(f"webhook returned {response.status_code}")
        return response

    async def process(self, job: PaymentSimulationJob) -> bool:
        """Simulate one payment; return whether the webhook was accepted."""

        order_number_ctx.set(job.order_number)
        start = time.perf_counter()
        await asyncio.sleep(self.delay_seconds)
        try:
            response = await self.deliver(job)
        except DeliveryError as exc:
            webhook_deliveries_total.labels(service=self.service_name, outcome="failed").inc()
            logger.error("webhook_delivery_failed job_dropped=true error=%s", exc.message)
            return False
        except Exception as exc:
            webhook_deliveries_total.labels(service=self.service_name, outcome="failed").inc()
            logger.exception("webhook_delivery_crashed job_dropped=true error=%r", exc)
            return False
        finally:
            payment_simulation_seconds.labels(service=self.service_name).observe(time.perf_counter() - start)
        webhook_deliveries_total.labels(service=self.service_name, outcome="delivered").inc()
        logger.info("webhook_delivered status_code=%s", response.status_code)
        return True

    async def run(self) -> None:
        """Consume jobs in FIFO order until cancelled."""

        logger.info("payment_worker_started delay_seconds=%s url=%s", self.delay_seconds, self.webhook_url)
        try:
            while True:
                job = await self.queue.dequeue()
                try:
                    await self.process(job)
                finally:
                    self.queue.task_done()
        except asyncio.CancelledError:
            logger.info("payment_worker_stopped pending_jobs=%s", self.queue.depth())
            raise

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run(), name="payment-simulation-worker")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop; a job already in flight is abandoned, never re-run."""

        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
