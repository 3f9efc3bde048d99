from __future__ import annotations

import asyncio

import pytest

from venuesearch.embeddings.pool import BoundedTaskPool


def test_concurrency_never_exceeds_ceiling():
    pool = BoundedTaskPool(3)

    async def _work(i: int) -> int:
        await asyncio.sleep(0.01)
        return i * 2

    results = asyncio.run(pool.map(_work, range(12)))

    assert results == [i * 2 for i in range(12)]
    assert pool.peak == 3
    assert pool.active == 0


def test_waiting_work_is_admitted_in_submission_order():
    pool = BoundedTaskPool(1)
    started: list[int] = []

    async def _work(i: int) -> None:
        started.append(i)
        await asyncio.sleep(0)

    asyncio.run(pool.map(_work, range(8)))

    assert started == list(range(8))


def test_run_propagates_errors_and_releases_slot():
    pool = BoundedTaskPool(1)

    async def _boom() -> None:
        raise RuntimeError("boom")

    async def _scenario() -> str:
        with pytest.raises(RuntimeError):
            await pool.run(_boom)

        async def _ok() -> str:
            return "ok"

        return await pool.run(_ok)

    assert asyncio.run(_scenario()) == "ok"
    assert pool.active == 0


def test_ceiling_must_be_positive():
    with pytest.raises(ValueError):
        BoundedTaskPool(0)
