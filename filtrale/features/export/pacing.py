"""
節奏排程器

依序執行非同步任務：任務 i+1 最早在任務 i 完成並經過固定間隔後開始
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar


T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]
Sleeper = Callable[[float], Awaitable[None]]


class PacedScheduler:
    """
    節奏排程器

    嚴格依輸入順序、一次一個執行，最後一個任務後不等待
    """

    def __init__(self, delay: float, sleep: Sleeper = asyncio.sleep) -> None:
        """
        初始化排程器

        Args:
            delay: 相鄰任務之間的間隔（秒）
            sleep: 等待函式（測試可注入）
        """
        if delay < 0:
            raise ValueError(f"間隔不可為負數: {delay}")
        self.delay = delay
        self._sleep = sleep

    async def run(self, factories: Iterable[TaskFactory[T]]) -> list[T]:
        """
        依序執行任務

        Args:
            factories: 任務工廠，呼叫時才建立 awaitable

        Returns:
            依輸入順序的結果
        """
        results: list[T] = []
        for position, factory in enumerate(factories):
            if position > 0 and self.delay > 0:
                await self._sleep(self.delay)
            results.append(await factory())
        return results
