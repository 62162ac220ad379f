"""In-process hand-off between order creation and the payment worker.

Jobs live only in process memory: anything still queued when the process
stops is lost. Producers are request handlers on the event loop, the single
consumer is `PaymentSimulationWorker`.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal

from orderpay.common.metrics import dispatch_queue_depth


@dataclass(frozen=True)
class PaymentSimulationJob:
    """One pending simulated payment for an order."""

    order_number: str
    amount: Decimal
    currency: str


class DispatchQueue:
    """Unbounded FIFO queue of payment simulation jobs."""

    def __init__(self, service_name: str = "orderpay") -> None:
        self._queue: asyncio.Queue[PaymentSimulationJob] = asyncio.Queue()
        self._gauge = dispatch_queue_depth.labels(service=service_name)

    def enqueue(self, job: PaymentSimulationJob) -> None:
        """Add a job without blocking."""

        self._queue.put_nowait(job)
        self._gauge.set(self._queue.qsize())

    async def dequeue(self) -> PaymentSimulationJob:
        """Wait for and remove the oldest job."""

        job = await self._queue.get()
        self._gauge.set(self._queue.qsize())
        return job

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every enqueued job has been marked done."""

        await self._queue.join()

    def depth(self) -> int:
        return self._queue.qsize()
