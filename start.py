#!/usr/bin/env python3
"""
Start script - honours the PORT environment variable set by the hosting platform,
falling back to APP_HOST / APP_PORT from settings
"""
import os

if __name__ == "__main__":
    import uvicorn

    from core.config import settings

    port = int(os.getenv("PORT", settings.app_port))

    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=port,
        log_level=settings.log_level.lower()
    )
