from __future__ import annotations
import os
# server/main.py builds the FastAPI app via create_app()
from server.main import app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5001")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
