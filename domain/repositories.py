"""Domain Repository Interfaces - collaborators the engine depends on"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.entities import Reservation, TaxRule
from domain.enums import ReservationStatus
from domain.value_objects import DateRange


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        """Store a newly booked reservation"""
        pass

    @abstractmethod
    async def load(self, reservation_id: UUID) -> Reservation:
        """Load reservation by ID, raising ReservationNotFound if missing"""
        pass

    @abstractmethod
    async def save(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Compare-and-swap on version, raising StaleVersion on conflict"""
        pass

    @abstractmethod
    async def find_by_booking_reference(self, reference: str) -> Optional[Reservation]:
        """Find reservation by booking reference"""
        pass

    @abstractmethod
    async def find_by_status(self, statuses: List[ReservationStatus]) -> List[Reservation]:
        """Find reservations in any of the given statuses"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass


class RoomInventoryService(ABC):
    """Room inventory collaborator; reserve must be an atomic check-and-set"""

    @abstractmethod
    async def is_available(self, room_number: str, date_range: DateRange,
                           holder_id: Optional[UUID] = None) -> bool:
        """Check whether the room is free for the range (ignoring holder's own hold)"""
        pass

    @abstractmethod
    async def reserve(self, room_number: str, date_range: DateRange, holder_id: UUID) -> bool:
        """Hold the room for the range; False when another holder overlaps"""
        pass

    @abstractmethod
    async def release(self, room_number: str, holder_id: UUID) -> bool:
        """Release every hold of holder_id on the room"""
        pass


class TaxConfigurationStore(ABC):
    """Tax configuration, read-only to the engine"""

    @abstractmethod
    async def list_enabled_tax_rules(self) -> List[TaxRule]:
        """List enabled tax rules"""
        pass

    @abstractmethod
    async def list_tax_rules(self) -> List[TaxRule]:
        """List all tax rules, enabled or not"""
        pass

    @abstractmethod
    async def upsert(self, rule: TaxRule) -> TaxRule:
        """Create or replace a tax rule (settings side only)"""
        pass
