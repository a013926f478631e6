"""
PacedScheduler 測試
"""

import pytest

from filtrale.features.export import PacedScheduler


class TestPacedScheduler:
    """節奏排程"""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_sequential_with_gaps(self, sleep_recorder) -> None:
        log: list[str] = []

        async def sleep(delay: float) -> None:
            log.append(f"sleep {delay}")
            await sleep_recorder(delay)

        def make(name: str):
            async def task() -> str:
                log.append(name)
                return name.upper()

            return task

        scheduler = PacedScheduler(0.5, sleep=sleep)
        results = await scheduler.run([make("a"), make("b"), make("c")])

        assert results == ["A", "B", "C"]
        assert log == ["a", "sleep 0.5", "b", "sleep 0.5", "c"]
        assert sleep_recorder.delays == [0.5, 0.5]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_no_wait_after_last(self, sleep_recorder) -> None:
        async def task() -> int:
            return 1

        assert await PacedScheduler(1.0, sleep=sleep_recorder).run([task]) == [1]
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_zero_delay_skips_sleep(self, sleep_recorder) -> None:
        async def task() -> int:
            return 1

        await PacedScheduler(0.0, sleep=sleep_recorder).run([task, task, task])
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_empty(self, sleep_recorder) -> None:
        assert await PacedScheduler(1.0, sleep=sleep_recorder).run([]) == []

    @pytest.mark.unit
    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            PacedScheduler(-0.1)
