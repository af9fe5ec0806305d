#!/usr/bin/env python3
"""
Entry point that starts the FastAPI server
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=os.environ.get("K6_RUNNER_API_HOST", "0.0.0.0"),
        port=int(os.environ.get("K6_RUNNER_API_PORT", "8000")),
        reload=os.environ.get("K6_RUNNER_API_RELOAD", "").lower() in {"1", "true", "yes"},
    )
