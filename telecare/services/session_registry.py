import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

from telecare.core.errors import SessionNotFoundError
from telecare.core.session import ApiSession, token_subject
from telecare.services.availability_client import AvailabilityClient
from telecare.services.coordinator import SlotBookingCoordinator, local_today

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class BookingSession:
    id: str
    api: ApiSession
    client: AvailabilityClient
    coordinator: SlotBookingCoordinator
    last_used: datetime = field(default_factory=_utc_now)
    # serializes submissions so one slot is sent to the backend once
    booking_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def owned_by(self, token: str) -> bool:
        return token_subject(token) == token_subject(self.api.token)

    def touch(self) -> None:
        self.last_used = _utc_now()

    async def close(self) -> None:
        self.coordinator.dispose()
        await self.api.aclose()


class BookingSessionRegistry:
    """In-memory booking sessions, one coordinator and backend connection each."""

    def __init__(
        self,
        api_factory: Callable[[str], ApiSession] = ApiSession,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._api_factory = api_factory
        self._today = today or local_today
        self._sessions: dict[str, BookingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def today(self) -> date:
        return self._today()

    def open_api(self, token: str) -> ApiSession:
        return self._api_factory(token)

    def create(self, token: str) -> BookingSession:
        api = self.open_api(token)
        client = AvailabilityClient(api)
        session = BookingSession(
            id=uuid4().hex,
            api=api,
            client=client,
            coordinator=SlotBookingCoordinator(client, today=self.today),
        )
        self._sessions[session.id] = session
        logger.info("Booking session %s opened", session.id)
        return session

    def get(self, session_id: str) -> BookingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError()
        session.touch()
        return session

    async def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info("Booking session %s closed", session_id)
        return True

    async def purge_idle(self, idle: timedelta, now: datetime | None = None) -> int:
        """Close sessions unused for longer than `idle`. Returns count closed."""
        cutoff = (now or _utc_now()) - idle
        stale = [sid for sid, s in self._sessions.items() if s.last_used < cutoff]
        for sid in stale:
            await self.remove(sid)
        return len(stale)

    async def close_all(self) -> None:
        for sid in list(self._sessions):
            await self.remove(sid)
