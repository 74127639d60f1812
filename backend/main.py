# backend/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

load_dotenv()

from config import settings
from storage import JsonStore, get_store, init_store, store
from utils.errors import SmartCartError

# Routers
from routes.auth import router as auth_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.payment import router as payment_router
from routes.products import router as products_router
from routes.socket import router as socket_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_store(store)
    logger.info(f"Smart cart API started, data in {store.data_dir.resolve()}")
    yield


app = FastAPI(title="Smart Cart API", version=APP_VERSION, lifespan=lifespan)

# Product images; the directory has to exist before StaticFiles is mounted
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/images", StaticFiles(directory=settings.UPLOAD_DIR), name="images")

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


if settings.DEBUG:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
        return response


@app.exception_handler(SmartCartError)
async def smart_cart_error_handler(request: Request, exc: SmartCartError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Router registration
app.include_router(auth_router, prefix="/api")
app.include_router(products_router, prefix="/api")
app.include_router(cart_router, prefix="/api")
app.include_router(orders_router, prefix="/api")
app.include_router(payment_router, prefix="/api")
app.include_router(socket_router)


@app.get("/api/status")
def status(store: JsonStore = Depends(get_store)):
    return {
        "status": "Server is running",
        "version": APP_VERSION,
        "files": {name: store.exists(name) for name in ("products", "users", "carts")},
        "env": "development" if settings.DEBUG else "production",
    }
