#!/usr/bin/env python3
"""
Run script for the Radio CMS backend
"""
import uvicorn

from radiocms.config.settings import settings
from radiocms.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
