# schoolshop/api/errors.py
from typing import NoReturn

from fastapi import HTTPException

from schoolshop.domain.errors import (
    CartConflictError,
    FileStorageError,
    InsufficientStockError,
    InvalidCredentialsError,
    InvalidTransitionError,
    NotAdminError,
    NotFoundError,
    PersistenceError,
    RenderError,
    StockExceededError,
    ValidationError,
)


def raise_http(e: Exception) -> NoReturn:
    if isinstance(e, InsufficientStockError):
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "product_id": e.product_id,
                "available": e.available,
                "requested": e.requested,
            },
        ) from e

    if isinstance(e, StockExceededError):
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "product_id": e.product_id, "available": e.stock},
        ) from e

    if isinstance(e, (ValidationError, ValueError)):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, (InvalidTransitionError, CartConflictError)):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, InvalidCredentialsError):
        raise HTTPException(
            status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"}
        ) from e

    if isinstance(e, NotAdminError):
        raise HTTPException(status_code=403, detail=str(e)) from e

    if isinstance(e, FileStorageError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    if isinstance(e, PersistenceError):
        raise HTTPException(status_code=503, detail=str(e)) from e

    if isinstance(e, RenderError):
        raise HTTPException(status_code=500, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e
