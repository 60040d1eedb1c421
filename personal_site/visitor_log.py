"""Visitor log: one signing per calendar day, system-wide.

The service checks for an existing signing on the current day and only then
inserts. The two steps are separate round trips, so a concurrent request can
slip in between them; the ``signed_day`` unique constraint catches that case
and the losing request is reported as ``AlreadySigned``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from personal_site.models import VisitorEntry

logger = logging.getLogger(__name__)

DEFAULT_NAME_MAX_LENGTH = 120


class VisitorLogError(Exception):
    pass


class InvalidInput(VisitorLogError, ValueError):
    pass


class StoreUnavailable(VisitorLogError):
    pass


class DuplicateSigningDay(VisitorLogError):
    pass


@dataclass(frozen=True)
class Signed:
    entry: VisitorEntry


@dataclass(frozen=True)
class AlreadySigned:
    day: date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(tz_name: str | None) -> ZoneInfo:
    if not tz_name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown SITE_TIMEZONE %r, using UTC", tz_name)
        return ZoneInfo("UTC")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_signed_day_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "signed_day" in message or "uq_visitor_log_signed_day" in message


class VisitorLogStore:
    """Thin adapter over the ``visitor_log`` table.

    Every method opens its own session, runs one statement and closes the
    session again, whether the statement succeeds or not.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def count_on_day(self, day: date) -> int:
        try:
            with self._session_factory() as session:
                return session.scalar(
                    select(func.count())
                    .select_from(VisitorEntry)
                    .where(VisitorEntry.signed_day == day)
                ) or 0
        except SQLAlchemyError as exc:
            logger.warning("Visitor log count failed for %s: %s", day, exc)
            raise StoreUnavailable("Could not read the visitor log.") from exc

    def insert(self, name: str, signed_at: datetime, signed_day: date) -> VisitorEntry:
        entry = VisitorEntry(name=name, signed_at=signed_at, signed_day=signed_day)
        try:
            with self._session_factory() as session:
                session.add(entry)
                session.commit()
        except IntegrityError as exc:
            if _is_signed_day_conflict(exc):
                raise DuplicateSigningDay(signed_day.isoformat()) from exc
            logger.warning("Visitor log insert rejected: %s", exc)
            raise StoreUnavailable("Could not save the visitor log entry.") from exc
        except SQLAlchemyError as exc:
            logger.warning("Visitor log insert failed: %s", exc)
            raise StoreUnavailable("Could not save the visitor log entry.") from exc
        set_committed_value(entry, "signed_at", _as_utc(entry.signed_at))
        return entry

    def list_all(self) -> list[VisitorEntry]:
        try:
            with self._session_factory() as session:
                entries = list(
                    session.scalars(
                        select(VisitorEntry).order_by(
                            VisitorEntry.signed_at.desc(), VisitorEntry.id.desc()
                        )
                    )
                )
        except SQLAlchemyError as exc:
            logger.warning("Visitor log query failed: %s", exc)
            raise StoreUnavailable("Could not read the visitor log.") from exc
        for entry in entries:
            set_committed_value(entry, "signed_at", _as_utc(entry.signed_at))
        return entries


class VisitorLogService:
    def __init__(
        self,
        store: VisitorLogStore,
        tz_name: str | None = "UTC",
        clock: Callable[[], datetime] = utc_now,
        name_max_length: int = DEFAULT_NAME_MAX_LENGTH,
    ):
        self.store = store
        self.zone = resolve_zone(tz_name)
        self.clock = clock
        self.name_max_length = name_max_length

    def local_day(self, moment: datetime) -> date:
        return _as_utc(moment).astimezone(self.zone).date()

    def today(self) -> date:
        return self.local_day(self.clock())

    def clean_name(self, name: str | None) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidInput("Please enter your name.")
        if len(cleaned) > self.name_max_length:
            raise InvalidInput(f"Names are limited to {self.name_max_length} characters.")
        return cleaned

    def list_entries(self) -> list[VisitorEntry]:
        return self.store.list_all()

    def try_sign_today(self, name: str | None) -> Signed | AlreadySigned:
        cleaned = self.clean_name(name)
        now = _as_utc(self.clock())
        today = self.local_day(now)

        if self.store.count_on_day(today) > 0:
            return AlreadySigned(day=today)

        try:
            entry = self.store.insert(cleaned, now, today)
        except DuplicateSigningDay:
            logger.info("Concurrent signing already recorded for %s", today)
            return AlreadySigned(day=today)

        logger.info("Visitor log signed for %s", today)
        return Signed(entry=entry)
