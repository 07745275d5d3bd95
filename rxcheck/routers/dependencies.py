from __future__ import annotations

from fastapi import Depends, Request

from ..config import Settings, get_settings
from ..services.data_service import DataService, get_data_service
from ..services.errors import InvalidUsageError
from ..services.interactions import InteractionEngine


def get_data_service_dependency(settings: Settings = Depends(get_settings)) -> DataService:
    return get_data_service(settings)


def get_interaction_engine(request: Request) -> InteractionEngine:
    # Created by the app lifespan; absent when the app was never started
    engine = getattr(request.app.state, "interaction_engine", None)
    if engine is None:
        raise InvalidUsageError("interaction engine is not running", reason="engine_not_started")
    return engine
