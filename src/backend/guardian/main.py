import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from guardian.config import settings

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(
    title="Subscription Guardian API",
    description="Finds recurring charges on pages, in email and in documents",
    version="0.1.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {
        "message": "Subscription Guardian API",
        "version": "0.1.0",
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Import routers
from guardian.routers import detect, subscriptions, sync, upload

# Include routers
app.include_router(detect.router)
app.include_router(sync.router)
app.include_router(upload.router)
app.include_router(subscriptions.router)
