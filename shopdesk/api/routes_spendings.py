# api/routes_spendings.py
from __future__ import annotations
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from pydantic import BaseModel

from shopdesk.api.deps import current_user, get_cfg, get_store
from shopdesk.core.services.spendings import SpendingService
from shopdesk.export.event_logger import append_event
from shopdesk.utils.dates import parse_query_date

router = APIRouter()


class SpendingIn(BaseModel):
    description: Optional[str] = None
    amount: Optional[Any] = None
    category: Optional[str] = None
    date: Optional[str] = None
    notes: Optional[str] = None


@router.post("/spendings", status_code=http_status.HTTP_201_CREATED)
def add_spending(payload: SpendingIn, user=Depends(current_user),
                 store=Depends(get_store), cfg=Depends(get_cfg)):
    spending = SpendingService(store).add(
        payload.description, payload.amount, payload.category, payload.date, payload.notes
    )
    append_event(cfg.paths["event_log_dir"], {
        "type": "spending_add", "user": user["username"], "spending_id": spending["id"],
        "amount": spending["amount"], "category": spending["category"],
    })
    return {"message": "Spending added successfully", "id": spending["id"], "spending": spending}


@router.get("/spendings")
def list_spendings(startDate: Optional[str] = Query(None), endDate: Optional[str] = Query(None),
                   category: Optional[str] = Query(None),
                   user=Depends(current_user), store=Depends(get_store)):
    return SpendingService(store).list_spendings(
        start_date=parse_query_date(startDate, "startDate"),
        end_date=parse_query_date(endDate, "endDate"),
        category=category,
    )


@router.delete("/spendings")
def delete_spending(id: Optional[str] = Query(None), user=Depends(current_user),
                    store=Depends(get_store), cfg=Depends(get_cfg)):
    SpendingService(store).delete(id)
    append_event(cfg.paths["event_log_dir"], {
        "type": "spending_delete", "user": user["username"], "spending_id": id,
    })
    return {"message": "Spending deleted successfully"}
