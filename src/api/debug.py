"""Debug API endpoints for checking the deployment's database connection."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from src.api.dependencies import get_user_store
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["debug"])


class DatabaseCheckResponse(BaseModel):
    """Response for the database connectivity check."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    user_count: int


@router.get("/test-db", response_model=DatabaseCheckResponse)
def check_database(store: Annotated[UserStore, Depends(get_user_store)]):
    """Count users to prove the store is reachable."""
    try:
        count = store.count()
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Database connection failed"},
        )

    return DatabaseCheckResponse(
        success=True,
        message="Database connection successful",
        user_count=count,
    )
