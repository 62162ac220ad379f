"""In-process dispatch queue."""

import asyncio
from decimal import Decimal

import pytest

from orderpay.common.dispatch import DispatchQueue, PaymentSimulationJob


def _job(n: int) -> PaymentSimulationJob:
    return PaymentSimulationJob(f"ORD-{n}", Decimal("10.00"), "USD")


@pytest.mark.asyncio
async def test_fifo_order():
    queue = DispatchQueue()
    for n in range(1, 4):
        queue.enqueue(_job(n))

    assert queue.depth() == 3
    assert [(await queue.dequeue()).order_number for _ in range(3)] == ["ORD-1", "ORD-2", "ORD-3"]
    assert queue.depth() == 0


@pytest.mark.asyncio
async def test_enqueue_never_blocks():
    """The queue is unbounded, so producers never wait."""

    queue = DispatchQueue()
    for n in range(10_000):
        queue.enqueue(_job(n))
    assert queue.depth() == 10_000


@pytest.mark.asyncio
async def test_dequeue_waits_for_producer():
    queue = DispatchQueue()
    consumer = asyncio.create_task(queue.dequeue())
    await asyncio.sleep(0)
    assert not consumer.done()

    queue.enqueue(_job(7))
    job = await asyncio.wait_for(consumer, timeout=1)
    assert job.order_number == "ORD-7"
