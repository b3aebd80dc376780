"""
Pending-booking recovery across an authentication redirect.

An unauthenticated client who finished picking services and a slot has
their selection stashed as a draft. Once signed in, the draft is replayed
through the normal confirmation path. The draft storage holds a single
draft at a time (last write wins).

States::

    ABSENT --stash--> DRAFTED --resume (replayed or discarded)--> ABSENT
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import ValidationError

from ..domain.exceptions import DraftCorrupt, InvalidRequest, SlotConflict
from ..domain.models import PendingBooking
from .booking import BookingService
from .protocols import DraftStorage

logger = logging.getLogger(__name__)


class DraftState(str, Enum):
    ABSENT = "absent"
    DRAFTED = "drafted"


class PendingBookingRecovery:
    """Stashes and replays a client's in-progress booking."""

    def __init__(self, storage: DraftStorage, booking_service: BookingService) -> None:
        self._storage = storage
        self._booking_service = booking_service

    @property
    def state(self) -> DraftState:
        """
        DRAFTED only while a readable, well-formed draft is stored.

        The provider of the draft is checked by ``peek``, which needs the
        current provider.
        """
        try:
            draft = self._parse()
        except DraftCorrupt:
            return DraftState.ABSENT
        return DraftState.DRAFTED if draft is not None else DraftState.ABSENT

    def stash(self, draft: PendingBooking) -> None:
        """Persist ``draft``, replacing any previous one."""
        self._storage.save(draft.model_dump_json())
        logger.debug("Stashed pending booking for provider %s", draft.provider_id)

    def peek(self, provider_id: str) -> PendingBooking | None:
        """
        Return the stored draft if it is usable in the current context.

        Unusable drafts are discarded silently.
        """
        try:
            return self._load(provider_id)
        except DraftCorrupt as exc:
            logger.debug("Discarding pending booking: %s", exc)
            self._storage.clear()
            return None

    def resume(self, client_id: str, provider_id: str) -> str | None:
        """
        Replay the stored draft for a client who just signed in.

        The draft is replayed through ``BookingService.confirm_draft`` and
        therefore through the conflict guard. It is consumed whether the
        replay succeeds or is rejected; rejections propagate so the caller
        can refresh availability.

        Args:
            client_id: The authenticated client
            provider_id: Provider of the page the client returned to

        Returns:
            The new appointment id, or None when there was no usable draft

        Raises:
            SlotConflict: If the drafted slot was taken in the meantime
            InvalidRequest: If the drafted selection is no longer valid
        """
        draft = self.peek(provider_id)
        if draft is None:
            return None

        try:
            appointment_id = self._booking_service.confirm_draft(draft, client_id)
        except (SlotConflict, InvalidRequest):
            self._storage.clear()
            raise

        self._storage.clear()
        return appointment_id

    def discard(self) -> None:
        self._storage.clear()

    def _load(self, provider_id: str) -> PendingBooking | None:
        draft = self._parse()
        if draft is None:
            return None

        if draft.provider_id != provider_id:
            raise DraftCorrupt(
                f"draft targets provider {draft.provider_id}, current page is {provider_id}"
            )
        return draft

    def _parse(self) -> PendingBooking | None:
        raw = self._storage.load()
        if raw is None:
            return None

        try:
            return PendingBooking.model_validate_json(raw)
        except ValidationError as exc:
            raise DraftCorrupt(f"unparseable draft ({exc.error_count()} error(s))") from exc
