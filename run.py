#!/usr/bin/env python3
"""
Run script for the Lesson Coach backend
"""
import uvicorn

from lesson_coach.config.settings import settings
from lesson_coach.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
