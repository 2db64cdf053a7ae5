"""FastAPI application exposing GigLedger tax export workflows."""
from __future__ import annotations

import logging

from fastapi import FastAPI

from src.api.dependencies import CONFIG
from src.api.routes import exports
from src.utils.config import configure_logging

logger = logging.getLogger(__name__)

# Configure logging
configure_logging(CONFIG.log_level)

# Initialize FastAPI app
app = FastAPI(title="GigLedger Tax Export API", version="0.1.0")

# Export routes handle: /export/schedule-c, /export/csv/{dataset}, /export/excel,
# /export/summary, /export/txf and /export/validate
app.include_router(exports.router, prefix="/export", tags=["Exports"])


@app.get("/health")
def healthcheck() -> dict[str, str]:
    """Service liveness check."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
