from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Uniform response envelope returned by every endpoint."""

    success: bool = True
    message: str
    data: Optional[DataT] = None


def success_response(message: str, data=None) -> dict:
    return {"success": True, "message": message, "data": data}
