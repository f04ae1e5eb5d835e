from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from pathlib import Path

from calorie_rewards.database import engine, Base
from calorie_rewards import models  # Import all models to register them with Base
from calorie_rewards.exceptions import StorageUnavailableException
from calorie_rewards.routes import router as rewards_router
from calorie_rewards.services.scheduler_service import start_scheduler, stop_scheduler
from calorie_rewards.constants import (
    CORS_ALLOWED_ORIGINS,
    DEFAULT_LOG_DIRECTORY_DEV,
    DEFAULT_LOG_DIRECTORY_PROD,
)

LOG_DIR = os.getenv("CALORIE_REWARDS_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("CALORIE_REWARDS_LOG_FILE", "app.log")

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger("calorie_rewards")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Calorie Rewards API",
    description="Points, levels, milestones and rewards shop for the calorie tracker",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rewards_router)


@app.exception_handler(StorageUnavailableException)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableException):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Points storage unavailable, please retry"}
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Calorie Rewards API started. Logging to: {log_path}")
    start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Calorie Rewards API")
    stop_scheduler()


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Calorie Rewards API", "status": "active"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("calorie_rewards.main:app", host="0.0.0.0", port=8000, reload=False)
