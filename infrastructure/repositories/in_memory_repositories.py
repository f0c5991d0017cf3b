"""In-Memory Repository Implementations"""
import threading
from datetime import datetime, timezone
from typing import Optional, List, Dict, Iterable, Tuple
from uuid import UUID

from domain.repositories import ReservationRepository, RoomInventoryService, TaxConfigurationStore
from domain.entities import Reservation, TaxRule
from domain.enums import ReservationStatus
from domain.errors import ReservationNotFound, StaleVersion
from domain.value_objects import DateRange


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}
        self._lock = threading.Lock()

    async def add(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        with self._lock:
            self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def load(self, reservation_id: UUID) -> Reservation:
        """Load a copy of the stored reservation"""
        with self._lock:
            stored = self._storage.get(reservation_id)
        if stored is None:
            raise ReservationNotFound(
                "Reservation not found",
                details={"reservation_id": reservation_id},
            )
        return stored.model_copy(deep=True)

    async def save(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Replace the stored reservation if nobody saved it in between"""
        with self._lock:
            stored = self._storage.get(reservation.reservation_id)
            if stored is None:
                raise ReservationNotFound(
                    "Reservation not found",
                    details={"reservation_id": reservation.reservation_id},
                )
            if stored.version != expected_version:
                raise StaleVersion(
                    "Reservation was modified by another request",
                    details={"attempted": expected_version, "limit": stored.version},
                )
            saved = reservation.model_copy(
                update={"modified_at": datetime.now(timezone.utc)}, deep=True
            )
            self._storage[reservation.reservation_id] = saved
        return saved.model_copy(deep=True)

    async def find_by_booking_reference(self, reference: str) -> Optional[Reservation]:
        """Find reservation by booking reference"""
        with self._lock:
            for reservation in self._storage.values():
                if reservation.booking_reference == reference:
                    return reservation.model_copy(deep=True)
        return None

    async def find_by_status(self, statuses: List[ReservationStatus]) -> List[Reservation]:
        with self._lock:
            return [
                r.model_copy(deep=True) for r in self._storage.values()
                if r.status in statuses
            ]

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        with self._lock:
            return [r.model_copy(deep=True) for r in self._storage.values()]


class InMemoryRoomInventory(RoomInventoryService):
    """In-memory room holds; reserve checks and writes under one lock"""

    def __init__(self, rooms: Optional[Iterable[str]] = None):
        self._rooms = set(str(r) for r in rooms) if rooms is not None else None
        self._holds: Dict[str, List[Tuple[UUID, DateRange]]] = {}
        self._lock = threading.Lock()

    def _conflicts(self, room_number: str, date_range: DateRange, holder_id: Optional[UUID]) -> bool:
        if self._rooms is not None and room_number not in self._rooms:
            return True
        return any(
            holder != holder_id and held.overlaps(date_range)
            for holder, held in self._holds.get(room_number, [])
        )

    async def is_available(self, room_number: str, date_range: DateRange,
                           holder_id: Optional[UUID] = None) -> bool:
        with self._lock:
            return not self._conflicts(room_number, date_range, holder_id)

    async def reserve(self, room_number: str, date_range: DateRange, holder_id: UUID) -> bool:
        with self._lock:
            if self._conflicts(room_number, date_range, holder_id):
                return False
            holds = [h for h in self._holds.get(room_number, []) if h[0] != holder_id]
            holds.append((holder_id, date_range))
            self._holds[room_number] = holds
            return True

    async def release(self, room_number: str, holder_id: UUID) -> bool:
        with self._lock:
            holds = self._holds.get(room_number, [])
            remaining = [h for h in holds if h[0] != holder_id]
            self._holds[room_number] = remaining
            return len(remaining) != len(holds)

    def holds_for(self, room_number: str) -> List[Tuple[UUID, DateRange]]:
        with self._lock:
            return list(self._holds.get(room_number, []))


class InMemoryTaxConfigurationStore(TaxConfigurationStore):
    """In-memory implementation of TaxConfigurationStore"""

    def __init__(self, rules: Optional[Iterable[TaxRule]] = None):
        self._storage: Dict[str, TaxRule] = {}
        for rule in rules or []:
            self._storage[rule.id] = rule

    async def list_enabled_tax_rules(self) -> List[TaxRule]:
        return [r for r in self._storage.values() if r.is_enabled]

    async def list_tax_rules(self) -> List[TaxRule]:
        return list(self._storage.values())

    async def upsert(self, rule: TaxRule) -> TaxRule:
        self._storage[rule.id] = rule
        return rule
