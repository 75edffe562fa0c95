# api/server.py
# App entry point: uvicorn shopdesk.api.server:app

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shopdesk.api.routes_auth import router as auth_router
from shopdesk.api.routes_newsletter import router as newsletter_router
from shopdesk.api.routes_orders import router as orders_router
from shopdesk.api.routes_sales import router as sales_router
from shopdesk.api.routes_spendings import router as spendings_router
from shopdesk.api.routes_stats import router as stats_router
from shopdesk.utils.exceptions import ShopError
from shopdesk.utils.logging import get_logger

logger = get_logger("api")

GENERIC_ERROR = "Internal server error"

app = FastAPI(title="ShopDesk Admin API")


# -- error mapping: {"message": ...} bodies --
@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.public:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        message = exc.message
    else:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}",
                     exc_info=exc.__cause__ or exc)
        message = GENERIC_ERROR
    return JSONResponse(status_code=exc.status_code, content={"message": message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid field '{where}': {first.get('msg', 'invalid value')}" if where else "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} -> 500", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": GENERIC_ERROR})


@app.get("/")
def root():
    return {"app": "shopdesk", "status": "ok"}


app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(sales_router, prefix="", tags=["offline-sales"])
app.include_router(spendings_router, prefix="", tags=["spendings"])
app.include_router(stats_router, prefix="", tags=["stats"])
app.include_router(orders_router, prefix="", tags=["orders"])
app.include_router(newsletter_router, prefix="", tags=["newsletter"])
