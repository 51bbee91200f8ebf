"""Route generation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...schemas.routing import CategoriesResponse, CategoryModel, RouteGenerationRequest, RouteGenerationResponse
from ...services.generation.service import generate_route

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("/categories", response_model=CategoriesResponse, status_code=status.HTTP_200_OK)
def list_categories() -> CategoriesResponse:
    return CategoriesResponse(
        categories=[
            CategoryModel(id=category_id, queries=list(queries))
            for category_id, queries in settings.poi_categories.items()
        ]
    )


@router.post("/generate", response_model=RouteGenerationResponse, status_code=status.HTTP_200_OK)
def generate(payload: RouteGenerationRequest) -> RouteGenerationResponse:
    try:
        return generate_route(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error generating route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate route: {str(exc)}",
        ) from exc
