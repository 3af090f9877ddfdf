import uuid
from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tourwise.database import Base


class TravelProfile(Base):
    """A traveler's standing preferences; priorities hold 0-10 weights per criterion."""

    __tablename__ = "travel_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    departure_city: Mapped[str | None] = mapped_column(String(100))
    budget: Mapped[int | None] = mapped_column(BigInteger)
    preferred_countries: Mapped[list] = mapped_column(JSON, default=list)
    travel_style: Mapped[str | None] = mapped_column(String(30))
    priorities: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
