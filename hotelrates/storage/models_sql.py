"""SQLAlchemy ORM models for hotel rate storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from hotelrates.models import utcnow

STATUS_IN_PROGRESS = "in_progress"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class Base(DeclarativeBase):
    """Declarative base class for ORM models."""


class Hotel(Base):
    """A tracked hotel and its latest known rate."""

    __tablename__ = "hotel_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hotel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    search_key: Mapped[str] = mapped_column(String(255), nullable=False)
    rate_harga: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    logs: Mapped[list["ScrapeLog"]] = relationship(
        back_populates="hotel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_hotel_data_name", "hotel_name"),
        Index("idx_hotel_data_updated_at", "updated_at"),
    )


class ScrapeLog(Base):
    """One collection attempt for a hotel."""

    __tablename__ = "hotel_scraping_results_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hotel_id: Mapped[int] = mapped_column(
        ForeignKey("hotel_data.id", ondelete="CASCADE"), nullable=False
    )
    search_key: Mapped[str] = mapped_column(String(255), nullable=False)
    room_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_currency: Mapped[str] = mapped_column(String(10), nullable=False, default="IDR")
    search_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    screenshot_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=STATUS_IN_PROGRESS)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    hotel: Mapped[Hotel] = relationship(back_populates="logs")

    __table_args__ = (
        Index("idx_scraping_log_hotel_id", "hotel_id"),
        Index("idx_scraping_log_status", "status"),
        Index("idx_scraping_log_search_timestamp", "search_timestamp"),
    )
