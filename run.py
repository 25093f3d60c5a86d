#!/usr/bin/env python3
"""
Run the Movie Ranking API server
"""
import os
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info"
    )
