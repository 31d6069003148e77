from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ActionResult(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT
    message: str | None = None


class ActionError(BaseModel):
    success: bool = False
    error: str
    code: str | None = None


class IdOut(BaseModel):
    id: str


class ActivityLogOut(BaseModel):
    id: str
    actor_id: str | None
    actor_role: str | None
    action: str
    entity_type: str
    entity_id: str | None
    details: dict
    created_at: datetime

    model_config = {"from_attributes": True}


def success_response(data: Any, message: str | None = None) -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(error: str, code: str | None = None) -> dict:
    return {"success": False, "error": error, "code": code}
