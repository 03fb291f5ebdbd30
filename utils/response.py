from fastapi.responses import JSONResponse

from typing import Any, Optional
from pydantic import BaseModel
from decimal import Decimal


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Decimal):
        return float(value)
    return value


def create_response(
    status: str,
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200
) -> JSONResponse:
    """
    Build the JSON envelope returned by every endpoint of the API.

    Args:
        status (str): Response status ("success" or "error").
        message (str): Human readable description of the outcome.
        data (Optional[Any], optional): Payload. Pydantic models and Decimal values are converted. Defaults to None.
        status_code (int, optional): HTTP status code. Defaults to 200.

    Returns:
        JSONResponse: Response with the keys status, message and data.
    """
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, list):
                data[key] = [_plain(item) for item in value]
            else:
                data[key] = _plain(value)
    elif isinstance(data, list):
        data = [_plain(item) for item in data]

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status,
            "message": message,
            "data": data or {}
        }
    )


def not_found_response(resource: str, resource_id: int) -> JSONResponse:
    """
    Response used when a resource looked up by id does not exist.
    """
    return create_response(
        "error",
        f"{resource} not found",
        {"id": resource_id},
        status_code=404
    )
