"""Availability API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.modules.availability.schemas import (
    AvailabilityWindowCreate,
    AvailabilityWindowRead,
    AvailabilityWindowUpdate,
    MessageRead,
    SlotRead,
)
from app.modules.availability.service import AvailabilityService, get_availability_service
from app.modules.identity.service import get_current_user

router = APIRouter(prefix="/availability", tags=["availability"])


@router.post("", response_model=AvailabilityWindowRead, status_code=status.HTTP_201_CREATED)
async def add_availability(
    payload: AvailabilityWindowCreate,
    service: AvailabilityService = Depends(get_availability_service),
    current_user=Depends(get_current_user),
) -> AvailabilityWindowRead:
    """Declare an availability window for the current tutor."""
    window = await service.add_window(payload, current_user)
    return AvailabilityWindowRead.model_validate(window)


@router.get("/me", response_model=list[AvailabilityWindowRead])
async def list_my_availability(
    service: AvailabilityService = Depends(get_availability_service),
    current_user=Depends(get_current_user),
) -> list[AvailabilityWindowRead]:
    windows = await service.list_my_windows(current_user)
    return [AvailabilityWindowRead.model_validate(item) for item in windows]


@router.get("/tutor/{tutor_id}", response_model=list[AvailabilityWindowRead])
async def list_tutor_availability(
    tutor_id: UUID,
    service: AvailabilityService = Depends(get_availability_service),
) -> list[AvailabilityWindowRead]:
    windows = await service.list_tutor_windows(tutor_id)
    return [AvailabilityWindowRead.model_validate(item) for item in windows]


@router.get("/slots/{tutor_id}/{date}", response_model=list[SlotRead])
async def list_available_slots(
    tutor_id: UUID,
    date: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> list[SlotRead]:
    """List bookable slots of a tutor for one date."""
    return await service.list_slots_for_date(tutor_id, date)


@router.put("/{window_id}", response_model=AvailabilityWindowRead)
async def update_availability(
    window_id: UUID,
    payload: AvailabilityWindowUpdate,
    service: AvailabilityService = Depends(get_availability_service),
    current_user=Depends(get_current_user),
) -> AvailabilityWindowRead:
    window = await service.update_window(window_id, payload, current_user)
    return AvailabilityWindowRead.model_validate(window)


@router.delete("/{window_id}", response_model=MessageRead)
async def remove_availability(
    window_id: UUID,
    service: AvailabilityService = Depends(get_availability_service),
    current_user=Depends(get_current_user),
) -> MessageRead:
    await service.remove_window(window_id, current_user)
    return MessageRead(message="Availability removed")
