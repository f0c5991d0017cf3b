"""Room Assignment Coordinator - binds rooms against the live inventory"""
import logging
from typing import Optional
from uuid import UUID

from domain.errors import RoomUnavailable
from domain.repositories import RoomInventoryService
from domain.value_objects import DateRange

logger = logging.getLogger(__name__)


class RoomAssignmentCoordinator:
    """
    Re-validates availability at the moment a room is bound.

    The UI's availability snapshot may be stale, so the check and the hold
    happen in one atomic ``reserve`` call on the inventory. On conflict the
    caller gets RoomUnavailable and nothing is held.
    """

    def __init__(self, inventory: RoomInventoryService):
        self.inventory = inventory

    async def is_available(self, room_number: str, date_range: DateRange,
                           reservation_id: Optional[UUID] = None) -> bool:
        """Advisory check for previews; never a substitute for reserve"""
        return await self.inventory.is_available(room_number, date_range, reservation_id)

    async def reserve(self, reservation_id: UUID, room_number: str, date_range: DateRange) -> None:
        if not await self.inventory.reserve(room_number, date_range, reservation_id):
            logger.warning(
                "Room %s unavailable for %s..%s (reservation %s)",
                room_number, date_range.check_in, date_range.check_out, reservation_id
            )
            raise RoomUnavailable(
                f"Room {room_number} is no longer available for the requested dates",
                details={
                    "room_number": room_number,
                    "check_in": date_range.check_in,
                    "check_out": date_range.check_out,
                },
            )
        logger.info("Room %s held for reservation %s", room_number, reservation_id)

    async def release(self, reservation_id: UUID, room_number: str) -> bool:
        released = await self.inventory.release(room_number, reservation_id)
        if released:
            logger.info("Room %s released by reservation %s", room_number, reservation_id)
        return released
