"""Product code allocation.

Derives base product codes from product names and hands out
collision-free codes while several users edit purchase orders at once.
Codes are claimed optimistically: a candidate is proposed, then reserved
with a TTL; a conflict moves on to the next candidate.
"""

import asyncio
import re
import unicodedata
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Protocol

import structlog

from variantsync.domain.entities import CodeReservation
from variantsync.domain.exceptions import (
    CodeConflictError,
    NoCodeAvailableError,
    ValidationError,
)
from variantsync.infrastructure.config import settings

logger = structlog.get_logger()

CLOTHING_KEYWORDS = ("QUAN", "AO", "DAM", "SET", "JUM", "AOKHOAC")
ACCESSORY_KEYWORDS = ("TUI", "MATKINH", "MYPHAM", "BANGDO", "GIAYDEP", "PHUKIEN")

CLOTHING_PREFIX = "N"
ACCESSORY_PREFIX = "P"

_BASE_CODE_PATTERN = re.compile(r"^([A-Z]+\d+)", re.IGNORECASE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Code Derivation
# ============================================================================


def normalize_name(text: str) -> str:
    """Upper-case ``text`` and strip diacritics and whitespace.

    ``"Áo khoác đen"`` becomes ``"AOKHOACDEN"``.
    """
    text = text.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return re.sub(r"\s+", "", stripped).upper()


def derive_base_code(product_name: str) -> str:
    """Derive the code prefix for a product name.

    Clothing keywords win over accessory keywords; anything else is
    treated as clothing.

    Raises:
        ValidationError: If the name is empty.
    """
    normalized = normalize_name(product_name or "")
    if not normalized:
        raise ValidationError({"product": ["name"]})

    if any(keyword in normalized for keyword in CLOTHING_KEYWORDS):
        return CLOTHING_PREFIX
    if any(keyword in normalized for keyword in ACCESSORY_KEYWORDS):
        return ACCESSORY_PREFIX
    return CLOTHING_PREFIX


def extract_base_code(product_code: str) -> str:
    """Base product code of a variant code (``N123VX`` -> ``N123``)."""
    if not product_code:
        return ""
    match = _BASE_CODE_PATTERN.match(product_code.strip())
    if match:
        return match.group(1).upper()
    return product_code.strip().upper()


# ============================================================================
# Reservation Store
# ============================================================================


class ReservationStore(Protocol):
    """Shared store of code reservations."""

    async def reserve(
        self, code: str, owner_id: str, expires_at: datetime, now: datetime
    ) -> CodeReservation:
        """Claim ``code`` for ``owner_id`` until ``expires_at``.

        Succeeds when the code is free, expired at ``now``, or already held
        by the same owner (the expiry is refreshed). The check and the
        write are one atomic step.

        Raises:
            CodeConflictError: If another owner holds a live reservation.
        """
        ...

    async def release(self, codes: Iterable[str], owner_id: str) -> int:
        """Drop the owner's reservations on ``codes``; returns how many went."""
        ...

    async def list_active(self, prefix: str, now: datetime) -> list[CodeReservation]:
        """Unexpired reservations whose code starts with ``prefix``."""
        ...


class InMemoryReservationStore:
    """In-memory reservation store.

    Used for single-process deployments and tests. Access is serialized
    with an ``asyncio.Lock``.
    """

    def __init__(self) -> None:
        self._reservations: dict[str, CodeReservation] = {}
        self._lock = asyncio.Lock()

    async def reserve(
        self, code: str, owner_id: str, expires_at: datetime, now: datetime
    ) -> CodeReservation:
        async with self._lock:
            current = self._reservations.get(code)
            if current is not None and current.blocks(owner_id, now):
                raise CodeConflictError(code, current.owner_id)
            reservation = CodeReservation(code=code, owner_id=owner_id, expires_at=expires_at)
            self._reservations[code] = reservation
            return reservation

    async def release(self, codes: Iterable[str], owner_id: str) -> int:
        released = 0
        async with self._lock:
            for code in codes:
                current = self._reservations.get(code)
                if current is not None and current.owner_id == owner_id:
                    del self._reservations[code]
                    released += 1
        return released

    async def list_active(self, prefix: str, now: datetime) -> list[CodeReservation]:
        async with self._lock:
            return [
                r
                for r in self._reservations.values()
                if r.code.startswith(prefix) and not r.is_expired(now)
            ]


# ============================================================================
# Allocator
# ============================================================================


class ProductCodeAllocator:
    """Hands out product codes that no other editing session holds.

    Example:
        allocator = ProductCodeAllocator(InMemoryReservationStore())
        code = await allocator.propose("Áo thun", scope_codes={"N1"}, owner_id="s1")
        # "N2", now reserved for session s1
    """

    def __init__(
        self,
        store: ReservationStore,
        ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize allocator.

        Args:
            store: Shared reservation store.
            ttl_seconds: Reservation lifetime, defaults to settings.
            max_attempts: Reservation attempts per proposal, defaults to settings.
            clock: Source of the current time.
        """
        self.store = store
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.reservation_ttl_seconds
        )
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.code_allocation_max_attempts
        )
        self._clock = clock

    derive_base_code = staticmethod(derive_base_code)

    async def propose(
        self,
        product_name: str,
        scope_codes: Iterable[str] = (),
        owner_id: str | None = None,
        current_code: str | None = None,
    ) -> str:
        """Propose the lowest free code for a product name.

        Every live reservation is unavailable, the caller's own included,
        so one session proposing for two products gets two codes.

        Args:
            product_name: Name the code prefix is derived from.
            scope_codes: Codes already committed (stored products, other
                lines of the order).
            owner_id: When given, the proposed code is also reserved for
                this owner.
            current_code: Code the owner already holds for this product;
                it may be proposed again.

        Returns:
            The proposed code, e.g. ``"N12"``.

        Raises:
            ValidationError: If the name is empty.
            NoCodeAvailableError: If every attempt hit a conflict.
        """
        base = derive_base_code(product_name)
        taken = {code.strip().upper() for code in scope_codes}
        current = current_code.strip().upper() if current_code else None
        held = {
            r.code
            for r in await self.store.list_active(base, self._clock())
            if not (r.code == current and r.owner_id == owner_id)
        }

        index = 0
        for attempt in range(1, self.max_attempts + 1):
            index = self._next_free_index(base, index, taken | held)
            candidate = f"{base}{index}"
            if owner_id is None:
                return candidate
            try:
                await self.reserve(candidate, owner_id)
            except CodeConflictError:
                logger.info(
                    "Code candidate taken concurrently",
                    code=candidate,
                    owner_id=owner_id,
                    attempt=attempt,
                )
                held.add(candidate)
                continue
            return candidate

        raise NoCodeAvailableError(base, self.max_attempts)

    @staticmethod
    def _next_free_index(base: str, after: int, unavailable: set[str]) -> int:
        index = after + 1
        while f"{base}{index}" in unavailable:
            index += 1
        return index

    async def reserve(self, code: str, owner_id: str) -> CodeReservation:
        """Reserve ``code`` for ``owner_id`` with the configured TTL.

        Raises:
            CodeConflictError: If another owner holds a live reservation.
        """
        normalized = code.strip().upper()
        now = self._clock()
        reservation = await self.store.reserve(normalized, owner_id, now + self.ttl, now)
        logger.debug("Reserved product code", code=normalized, owner_id=owner_id)
        return reservation

    async def release(self, codes: Iterable[str], owner_id: str) -> int:
        """Release the owner's reservations. Releasing twice is harmless."""
        normalized = [code.strip().upper() for code in codes]
        released = await self.store.release(normalized, owner_id)
        if released:
            logger.debug("Released product codes", codes=normalized, owner_id=owner_id)
        return released

    async def replace(self, old_code: str, new_code: str, owner_id: str) -> CodeReservation:
        """Swap a reservation after a manual code edit.

        The new code is reserved first, so a conflict leaves the old
        reservation in place.
        """
        reservation = await self.reserve(new_code, owner_id)
        if old_code.strip().upper() != reservation.code:
            await self.release([old_code], owner_id)
        return reservation

    @asynccontextmanager
    async def reservation_scope(self, owner_id: str) -> AsyncIterator["ReservationScope"]:
        """Release every code reserved through the scope on exit.

        Example:
            async with allocator.reservation_scope("session-1") as scope:
                code = await scope.propose("Quần jean")
        """
        scope = ReservationScope(self, owner_id)
        try:
            yield scope
        finally:
            await self.release(scope.codes, owner_id)


class ReservationScope:
    """Codes reserved by one owner inside ``reservation_scope``."""

    def __init__(self, allocator: ProductCodeAllocator, owner_id: str) -> None:
        self.allocator = allocator
        self.owner_id = owner_id
        self.codes: set[str] = set()

    async def propose(self, product_name: str, scope_codes: Iterable[str] = ()) -> str:
        code = await self.allocator.propose(product_name, scope_codes, owner_id=self.owner_id)
        self.codes.add(code)
        return code

    async def reserve(self, code: str) -> CodeReservation:
        reservation = await self.allocator.reserve(code, self.owner_id)
        self.codes.add(reservation.code)
        return reservation

