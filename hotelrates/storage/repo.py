"""Repository helpers for interacting with persistent storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from hotelrates.models import Target, utcnow

from .models_sql import (
    STATUS_ERROR,
    STATUS_IN_PROGRESS,
    STATUS_SUCCESS,
    Hotel,
    ScrapeLog,
)


def add_hotel(
    session: Session,
    hotel_name: str,
    search_key: str,
    *,
    rate: float | None = None,
    updated_at: datetime | None = None,
) -> Hotel:
    stamp = updated_at or utcnow()
    hotel = Hotel(
        hotel_name=hotel_name,
        search_key=search_key,
        rate_harga=rate,
        created_at=stamp,
        updated_at=stamp,
    )
    session.add(hotel)
    session.flush()
    return hotel


def list_targets(session: Session, limit: int | None = None) -> list[Target]:
    """Return hotels to collect, least recently updated first."""

    stmt = select(Hotel).order_by(Hotel.updated_at.asc(), Hotel.id.asc())
    if limit is not None:
        stmt = stmt.limit(limit)

    return [
        Target(
            id=hotel.id,
            name=hotel.hotel_name,
            search_key=hotel.search_key or hotel.hotel_name,
            last_price=hotel.rate_harga,
            updated_at=hotel.updated_at,
        )
        for hotel in session.execute(stmt).scalars()
    ]


def start_scrape_log(session: Session, hotel_id: int, search_key: str) -> ScrapeLog:
    log = ScrapeLog(
        hotel_id=hotel_id,
        search_key=search_key,
        status=STATUS_IN_PROGRESS,
        search_timestamp=utcnow(),
    )
    session.add(log)
    session.flush()
    return log


def mark_scrape_success(session: Session, log_id: int, price: float) -> ScrapeLog | None:
    """Mark a log row successful and copy the price onto its hotel."""

    log = session.get(ScrapeLog, log_id)
    if log is None:
        return None

    now = utcnow()
    log.room_price = price
    log.status = STATUS_SUCCESS
    log.error_message = None
    log.search_timestamp = now

    hotel = session.get(Hotel, log.hotel_id)
    if hotel is not None:
        hotel.rate_harga = price
        hotel.updated_at = now
    session.flush()
    return log


def mark_scrape_error(session: Session, log_id: int, message: str) -> ScrapeLog | None:
    log = session.get(ScrapeLog, log_id)
    if log is None:
        return None
    log.status = STATUS_ERROR
    log.error_message = message
    log.search_timestamp = utcnow()
    session.flush()
    return log


def delete_stale_in_progress(session: Session, *, older_than: timedelta = timedelta(hours=1)) -> int:
    """Remove ``in_progress`` log rows abandoned for longer than *older_than*."""

    cutoff = datetime.now(timezone.utc) - older_than
    stmt = delete(ScrapeLog).where(
        ScrapeLog.status == STATUS_IN_PROGRESS,
        ScrapeLog.search_timestamp < cutoff,
    )
    result = session.execute(stmt)
    return int(result.rowcount or 0)
