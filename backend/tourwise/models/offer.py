import uuid
from datetime import date, datetime

from sqlalchemy import JSON, BigInteger, Boolean, Date, DateTime, Float, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tourwise.database import Base


class TourOffer(Base):
    __tablename__ = "tour_offers"
    __table_args__ = (
        Index("ix_tour_offers_provider_external", "provider", "external_id", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    external_id: Mapped[str] = mapped_column(String(120), nullable=False)
    hotel_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hotel_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    resort: Mapped[str | None] = mapped_column(String(100))
    stars: Mapped[int | None] = mapped_column(Integer)
    beach_line: Mapped[int | None] = mapped_column(Integer)
    meal_plan: Mapped[str | None] = mapped_column(String(10))
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price_old: Mapped[int | None] = mapped_column(BigInteger)
    currency: Mapped[str] = mapped_column(String(3), default="RUB")
    start_date: Mapped[date | None] = mapped_column(Date)
    nights: Mapped[int] = mapped_column(Integer, default=0)
    hotel_rating: Mapped[float | None] = mapped_column(Float)
    booking_url: Mapped[str] = mapped_column(Text, default="")
    instant_confirm: Mapped[bool] = mapped_column(Boolean, default=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class SearchRequestLog(Base):
    __tablename__ = "search_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)
    raw_text: Mapped[str | None] = mapped_column(Text)
    parsed_params: Mapped[dict | None] = mapped_column(JSON)
    search_params: Mapped[dict] = mapped_column(JSON, nullable=False)
    result_count: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="completed")
    response_time_ms: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
