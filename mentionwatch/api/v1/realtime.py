"""
Realtime WebSocket
계정/프로젝트 룸에 참여해 알림 이벤트를 수신

    WS /ws?account_id=...&project_id=...

메시지 형식: {"event": "alert", "data": {...}}
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from mentionwatch.core.container import Container, get_container
from mentionwatch.services.notifications.realtime import Subscription, account_room, project_room

logger = logging.getLogger(__name__)

router = APIRouter()


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await subscription.next_event()
        await websocket.send_json(message)


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    account_id: Optional[str] = None,
    project_id: Optional[str] = None,
    container: Container = Depends(get_container),
):
    rooms = []
    if account_id:
        rooms.append(account_room(account_id))
    if project_id:
        rooms.append(project_room(project_id))

    await websocket.accept()
    subscription = container.hub.subscribe(rooms)
    await websocket.send_json({"event": "joined", "data": {"rooms": sorted(subscription.rooms)}})
    logger.info(f"[Realtime] Client joined {sorted(subscription.rooms)}")

    sender = asyncio.create_task(_forward(websocket, subscription))
    try:
        # 클라이언트 메시지는 무시하고 연결 종료만 감지
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"[Realtime] Client left {sorted(subscription.rooms)}")
    finally:
        sender.cancel()
        container.hub.unsubscribe(subscription)
