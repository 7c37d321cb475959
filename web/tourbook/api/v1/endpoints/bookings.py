from typing import List
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from tourbook.api.v1.schemas import (
    BookingCreate, BookingUpdate, BookingOut, BookingStats, BookingStatsOut
)
from tourbook.deps import SessionDep
from tourbook.roles import STAFF_ROLES
from tourbook.security import current_user, role_required
from tourbook.services import BookingService


router = APIRouter()

staff_only = role_required(STAFF_ROLES)


# User routes

@router.get("/my-bookings", response_model=List[BookingOut])
async def list_my_bookings(
    sess: SessionDep,
    user=Depends(current_user),
):
    """Bookings made by the current user"""
    service = BookingService(sess)
    records = await service.list_my_bookings(user)
    return [BookingOut.from_record(r) for r in records]


@router.patch("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(
    booking_id: int,
    sess: SessionDep,
    user=Depends(current_user),
):
    """Cancel a booking and release its seats"""
    service = BookingService(sess)
    record = await service.cancel_booking(booking_id, user)
    return BookingOut.from_record(record)


# Staff routes

@router.get("/booking-stats", response_model=BookingStatsOut, dependencies=[Depends(staff_only)])
async def get_booking_stats(sess: SessionDep):
    """Paid bookings per month"""
    service = BookingService(sess)
    stats = await service.get_booking_stats()
    return BookingStatsOut(stats=[BookingStats(**s) for s in stats])


@router.get("", response_model=List[BookingOut], dependencies=[Depends(staff_only)])
async def list_bookings(
    sess: SessionDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, gt=0, le=500),
):
    service = BookingService(sess)
    records = await service.list_bookings(skip=skip, limit=limit)
    return [BookingOut.from_record(r) for r in records]


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(staff_only)])
async def create_booking(
    payload: BookingCreate,
    sess: SessionDep,
):
    """Create a booking directly, subject to the tour's group size"""
    service = BookingService(sess)
    record = await service.create_admin_booking(
        payload.model_dump(by_alias=True, exclude_none=True)
    )
    return BookingOut.from_record(record)


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: int,
    sess: SessionDep,
    user=Depends(current_user),
):
    service = BookingService(sess)
    record = await service.get_booking(booking_id, user)
    return BookingOut.from_record(record)


@router.patch("/{booking_id}", response_model=BookingOut, dependencies=[Depends(staff_only)])
async def update_booking(
    booking_id: int,
    payload: BookingUpdate,
    sess: SessionDep,
):
    """Edit a booking; extra seats are checked against the tour's group size"""
    service = BookingService(sess)
    record = await service.update_booking(
        booking_id, payload.model_dump(by_alias=True, exclude_none=True)
    )
    return BookingOut.from_record(record)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(staff_only)])
async def delete_booking(
    booking_id: int,
    sess: SessionDep,
):
    service = BookingService(sess)
    await service.delete_booking(booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
