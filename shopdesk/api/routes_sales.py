# api/routes_sales.py
# Offline (in-store) sales
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from pydantic import BaseModel

from shopdesk.api.deps import current_user, get_cfg, get_store
from shopdesk.core.services.ledger import InventoryLedger
from shopdesk.export.event_logger import append_event
from shopdesk.utils.dates import parse_query_date

router = APIRouter()


class CustomerInfoIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


# fields are optional here; the ledger reports missing ones as 400 with a message
class OfflineSaleIn(BaseModel):
    productId: Optional[str] = None
    colorName: Optional[str] = None
    sizes: Optional[Dict[str, Any]] = None
    customerInfo: Optional[CustomerInfoIn] = None
    totalAmount: Optional[float] = None
    notes: Optional[str] = None


@router.post("/offline-sales", status_code=http_status.HTTP_201_CREATED)
def create_offline_sale(payload: OfflineSaleIn, user=Depends(current_user),
                        store=Depends(get_store), cfg=Depends(get_cfg)):
    sale = InventoryLedger(store).record_sale(
        payload.productId,
        payload.colorName,
        payload.sizes,
        customer_info=payload.customerInfo.model_dump(exclude_none=True) if payload.customerInfo else None,
        total_amount=payload.totalAmount,
        notes=payload.notes,
    )
    append_event(cfg.paths["event_log_dir"], {
        "type": "offline_sale_create", "user": user["username"],
        "sale_id": sale["id"], "product_id": sale["productId"], "color": sale["colorName"],
        "sizes": sale["sizes"], "total_quantity": sale["totalQuantity"],
        "total_amount": sale["totalAmount"],
    })
    return {"message": "Offline sale recorded successfully", "saleId": sale["id"], "sale": sale}


@router.get("/offline-sales")
def list_offline_sales(startDate: Optional[str] = Query(None), endDate: Optional[str] = Query(None),
                       productId: Optional[str] = Query(None),
                       user=Depends(current_user), store=Depends(get_store)):
    return InventoryLedger(store).list_sales(
        start_date=parse_query_date(startDate, "startDate"),
        end_date=parse_query_date(endDate, "endDate"),
        product_id=productId,
    )
