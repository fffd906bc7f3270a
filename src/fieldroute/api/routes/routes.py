"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.routing import MoveDayRequest, OptimizeRequest, RoundTripResponse, SplitRouteModel
from ...services.routing.errors import RouteInputError
from ...services.routing.service import (
    move_day,
    optimize_route,
    roundtrip_response,
    split_route_from_model,
    split_route_to_model,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=SplitRouteModel, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> SplitRouteModel:
    try:
        return optimize_route(payload)
    except RouteInputError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc


@router.post("/move-day", response_model=SplitRouteModel, status_code=status.HTTP_200_OK)
def move(payload: MoveDayRequest) -> SplitRouteModel:
    """Move one day of an optimized route to another position."""
    try:
        route = move_day(split_route_from_model(payload.route), payload.from_index, payload.to_index)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return split_route_to_model(route)


@router.get("/roundtrip", response_model=RoundTripResponse, status_code=status.HTTP_200_OK)
def roundtrip(
    origin: str = Query(..., description="Where the trip starts and ends"),
    destination: str = Query(..., description="The visited location"),
) -> RoundTripResponse:
    try:
        return roundtrip_response(origin, destination)
    except RouteInputError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
