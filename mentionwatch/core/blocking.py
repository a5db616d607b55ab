"""
동기 호출 오프로딩

SQLAlchemy 세션처럼 블로킹되는 호출을 기본 스레드 풀에서 실행해
이벤트 루프(웹소켓, 다른 회차)가 멈추지 않게 한다.
"""

import asyncio
from functools import partial
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """func(*args, **kwargs)를 executor에서 실행하고 결과를 기다린다"""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))
