"""Response formatting utilities"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

MAX_PAGE_SIZE = 100


def format_success_response(message: str, data: Optional[dict] = None, **kwargs) -> dict:
    """
    Format a standardized success response

    Example:
        return format_success_response(
            "Schedule deleted",
            data={"schedule_id": str(schedule.id)}
        )
    """
    response = {"message": message}
    if data:
        response["data"] = data
    response.update(kwargs)
    return response


def validate_pagination(page: int, limit: int) -> None:
    """Raise 400 unless page >= 1 and 1 <= limit <= 100"""
    if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid pagination: page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}",
        )


def paginated(items: List[Any], total: int, page: int, limit: int, **extra) -> Dict[str, Any]:
    """Standard envelope for paginated list endpoints"""
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
        },
        **extra,
    }
