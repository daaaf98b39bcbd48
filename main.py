#!/usr/bin/env python3
import logging
import os

import uvicorn

from query_gateway.app import create_app

logger = logging.getLogger("query_gateway")

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("QUERY_GATEWAY_DEV_MODE", "false").lower() == "true"

    logger.info(f"Starting record query gateway on {host}:{port} (reload={reload_enabled})")
    uvicorn.run("main:app", host=host, port=port, reload=reload_enabled)
