from __future__ import annotations

from fastapi import Request

from wallmeasure.config import Settings


def get_app_settings(request: Request) -> Settings:
    """
    Dependency: settings stored in app.state (easy to replace in tests).
    """
    return request.app.state.settings
