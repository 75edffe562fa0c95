# api/routes_stats.py
from fastapi import APIRouter, Depends

from shopdesk.api.deps import current_user, get_cfg, get_store
from shopdesk.core.services.stats import StatsAggregator
from shopdesk.utils.exceptions import ShopError
from shopdesk.utils.logging import get_logger

router = APIRouter()
logger = get_logger("api.stats")


@router.get("/stats")
def get_stats(user=Depends(current_user), store=Depends(get_store), cfg=Depends(get_cfg)):
    aggregator = StatsAggregator(
        store,
        shipping_fee=cfg.stats["shipping_fee"],
        low_stock_threshold=cfg.stats["low_stock_threshold"],
    )
    try:
        return aggregator.build()
    except Exception as e:
        # single-collection failures are absorbed inside build(); this is a total failure
        logger.exception("Error fetching stats")
        raise ShopError("Internal server error") from e
