"""
Realtime Fan-out
계정/프로젝트 룸 단위 실시간 이벤트 전달

- 룸 키: "user:{account_id}", "project:{project_id}"
- 여러 룸에 동시에 발행해도 구독자당 1회만 전달
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


def account_room(account_id: str) -> str:
    return f"user:{account_id}"


def project_room(project_id: str) -> str:
    return f"project:{project_id}"


@runtime_checkable
class RealtimePublisher(Protocol):
    """실시간 발행 인터페이스"""

    async def publish(self, rooms: Iterable[str], event: str, payload: Dict[str, Any]) -> int:
        ...


@dataclass(eq=False)
class Subscription:
    """룸 구독 (이벤트 큐 보유)"""
    rooms: Set[str]
    queue: "asyncio.Queue[Dict[str, Any]]" = field(
        default_factory=lambda: asyncio.Queue(maxsize=DEFAULT_QUEUE_SIZE)
    )

    async def next_event(self) -> Dict[str, Any]:
        return await self.queue.get()


class RoomHub:
    """
    프로세스 내 룸 허브

    웹소켓 엔드포인트가 subscribe()로 구독하고
    알림 엔진이 publish()로 발행한다.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, rooms: Iterable[str]) -> Subscription:
        subscription = Subscription(rooms={room for room in rooms if room})
        self._subscriptions.append(subscription)
        logger.debug(f"[RoomHub] Subscribed to {sorted(subscription.rooms)}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, rooms: Iterable[str], event: str, payload: Dict[str, Any]) -> int:
        """룸 합집합의 구독자에게 1회씩 전달, 전달 수 반환"""
        targets = {room for room in rooms if room}
        message = {"event": event, "data": payload}
        delivered = 0

        for subscription in list(self._subscriptions):
            if not subscription.rooms & targets:
                continue
            try:
                subscription.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"[RoomHub] Subscriber queue full, dropping {event}")

        return delivered
