# api/routes_orders.py
# Orders, product lookup for the sale form, live customers, order notifications
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from shopdesk.api.deps import current_user, get_cfg, get_notifier, get_settings, get_store
from shopdesk.core.services.catalog import CatalogService
from shopdesk.core.services.customers import CustomerService
from shopdesk.core.services.notifications import OrderNotifier
from shopdesk.core.services.orders import OrderService
from shopdesk.export.event_logger import append_event

router = APIRouter()


class StatusIn(BaseModel):
    status: Optional[str] = None


@router.get("/orders")
def list_orders(status: Optional[str] = Query(None), user=Depends(current_user), store=Depends(get_store)):
    return OrderService(store).list_orders(status)


@router.patch("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: StatusIn, user=Depends(current_user),
                        store=Depends(get_store), cfg=Depends(get_cfg)):
    result = OrderService(store).set_status(order_id, payload.status)
    append_event(cfg.paths["event_log_dir"], {
        "type": "order_status", "user": user["username"], "order_id": order_id,
        "from": result["previous"], "to": result["status"],
    })
    return result


@router.get("/products/search")
def search_products(q: Optional[str] = Query(None), user=Depends(current_user), store=Depends(get_store)):
    return CatalogService(store).search(q)


@router.get("/online-users")
def online_users(user=Depends(current_user), store=Depends(get_store)):
    return {"onlineUsers": CustomerService(store).online_users()}


@router.post("/notifications/poll")
def poll_notifications(user=Depends(current_user), store=Depends(get_store),
                       settings=Depends(get_settings), notifier=Depends(get_notifier)):
    sent = OrderNotifier(store, settings, notifier).poll()
    return {"notified": sent}
