"""API Dependencies - collaborator wiring and error mapping"""
from fastapi import status

from application.room_assignment import RoomAssignmentCoordinator
from application.services import ReservationService, TaxRuleService
from domain.errors import ReservationError
from infrastructure.config import settings
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomInventory, InMemoryTaxConfigurationStore
)

# In production these are the persistence, inventory and settings services.
reservation_repo = InMemoryReservationRepository()
room_inventory = InMemoryRoomInventory()
tax_store = InMemoryTaxConfigurationStore()


def get_reservation_service() -> ReservationService:
    return ReservationService(
        reservation_repo,
        tax_store,
        RoomAssignmentCoordinator(room_inventory),
        settings=settings
    )


def get_tax_rule_service() -> TaxRuleService:
    return TaxRuleService(tax_store)


ERROR_STATUS = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
    "transition": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
}


def status_for(error: ReservationError) -> int:
    return ERROR_STATUS.get(error.category, status.HTTP_400_BAD_REQUEST)
