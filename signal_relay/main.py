# signal_relay/main.py

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signal_relay.core.config import settings
from signal_relay.core.logging import setup_logging, get_logger
from signal_relay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Signal Relay")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Signaling server running on port %d (origin %s)", settings.PORT, settings.FRONTEND_URL)


def run() -> None:
    uvicorn.run("signal_relay.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
