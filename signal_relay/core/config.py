# signal_relay/core/config.py
import os
from dotenv import load_dotenv


class Settings:
    """
    Setup environment variables.
        - PORT the port uvicorn listens on
        - HOST the interface uvicorn binds to
        - FRONTEND_URL the origin allowed by CORS
        - OUTBOX_SIZE how many outbound frames may queue per connection
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))

    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    OUTBOX_SIZE: int = int(os.getenv("OUTBOX_SIZE", "1000"))

settings = Settings()
