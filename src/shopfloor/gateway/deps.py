"""Dependency injection -- stores and clock come from app.state

Both are created in the lifespan (or set directly by tests).
"""

from fastapi import Depends, Request
from shopfloor.core.clock import Clock
from shopfloor.core.store import StoreGroup

from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """StoreGroup from app.state"""
    return request.app.state.store_group


def get_clock(request: Request) -> Clock:
    """Clock from app.state"""
    return request.app.state.clock


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    clock: Clock = Depends(get_clock),
) -> TaskService:
    return TaskService(store_group, clock)
