"""Downtime cause taxonomy route

GET /api/downtime/reasons: active reasons grouped by category.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from shopfloor.core.store import StoreGroup
from shopfloor.core.store.protocols import DowntimeReasonStore

from ..deps import get_store_group

router = APIRouter()


class ReasonItem(BaseModel):
    id: int
    code: str
    name: str
    description: str


class ReasonCategory(BaseModel):
    category: str
    reasons: list[ReasonItem]


class DowntimeReasonsResponse(BaseModel):
    categories: list[ReasonCategory]


@router.get("/api/downtime/reasons", response_model=DowntimeReasonsResponse)
async def list_downtime_reasons(store_group: StoreGroup = Depends(get_store_group)):
    """Active reasons, sorted by category then name"""
    reason_store: DowntimeReasonStore = store_group.downtime_store
    reasons = await reason_store.list_reasons(active_only=True)

    grouped: dict[str, list[ReasonItem]] = {}
    for r in reasons:
        grouped.setdefault(r.category, []).append(
            ReasonItem(id=r.id, code=r.code, name=r.name, description=r.description)
        )

    return DowntimeReasonsResponse(
        categories=[
            ReasonCategory(category=name, reasons=items)
            for name, items in grouped.items()
        ]
    )
