from typing import Optional
from fastapi import APIRouter, Query

from tourbook.api.v1.schemas import AvailabilityOut
from tourbook.deps import SessionDep
from tourbook.records import parse_party_size, to_date_key
from tourbook.services import AvailabilityService
from tourbook.core import ValidationError


router = APIRouter()


@router.get("/{tour_id}/check-availability", response_model=AvailabilityOut)
async def check_availability(
    tour_id: int,
    sess: SessionDep,
    date: Optional[str] = Query(None, description="Tour day (YYYY-MM-DD)"),
    participants: Optional[str] = Query(None, description="Party size, defaults to 1"),
):
    """Can a party of *participants* still join the tour on *date*?

    Read only; nothing is reserved.
    """
    if not date:
        raise ValidationError("Please provide a date", field="date")
    date_key = to_date_key(date, field_name="date")
    party_size = parse_party_size(participants, field_name="participants") if participants is not None else 1

    service = AvailabilityService(sess)
    verdict = await service.check(tour_id, date_key, party_size)
    return AvailabilityOut.from_verdict(verdict)
