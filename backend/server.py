from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
import logging

from config import CORS_ORIGINS, TRAINING_MODE
from database import connect, create_indexes, ACTIVE_DB_NAME
from routers import (
    auth_router,
    users_router,
    stages_router,
    orders_router,
    production_router,
    machines_router,
    shopify_router,
    webhooks_router,
    products_router,
    reports_router
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create the main app
app = FastAPI(title="StitchFlow API", version="1.0.0")

# Create main API router with /api prefix
api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(stages_router)
api_router.include_router(orders_router)
api_router.include_router(production_router)
api_router.include_router(machines_router)
api_router.include_router(shopify_router)
api_router.include_router(webhooks_router)
api_router.include_router(products_router)
api_router.include_router(reports_router)


@api_router.get("/")
async def root():
    return {"message": "StitchFlow API", "status": "running"}


@api_router.get("/config")
async def get_config():
    return {"training_mode": TRAINING_MODE, "database": ACTIVE_DB_NAME}


app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_db_client():
    app.state.client, app.state.db = connect()
    await create_indexes(app.state.db)


@app.on_event("shutdown")
async def shutdown_db_client():
    app.state.client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
