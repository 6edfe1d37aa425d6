# backend/main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db
from utils.errors import register_exception_handlers

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Router imports
from routes.auth import router as auth_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router, admin_router as admin_orders_router
from routes.products import router as products_router
from routes.categories import router as categories_router
from routes.settings import router as settings_router
from routes.admin import router as admin_clients_router
from routes.stats import router as stats_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"Jana Distribution API started ({settings.ENVIRONMENT})")
    yield


app = FastAPI(title="Jana Distribution API", version="1.0.0", lifespan=lifespan)

# CORS: local frontend plus the configured one
origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Router registration
app.include_router(auth_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(admin_orders_router)
app.include_router(products_router)
app.include_router(categories_router)
app.include_router(settings_router)
app.include_router(admin_clients_router)
app.include_router(stats_router)


@app.get("/api/health")
def health():
    return {"success": True, "message": "Jana Distribution API opérationnelle"}
