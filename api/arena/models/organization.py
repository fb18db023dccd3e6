"""Organization, club and court models.

Organization = an operator owning one or more clubs.
Club = a physical venue with its own IANA timezone; all of its hours are club-local.
Court = an individual bookable court at a club.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from arena.core.config import settings
from arena.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from arena.models.hours import BusinessHours, SpecialHours


class Organization(TimestampMixin, Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    clubs: Mapped[list["Club"]] = relationship(back_populates="organization", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Organization {self.slug}>"


class Club(TimestampMixin, Base):
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int | None] = mapped_column(ForeignKey("organizations.id"))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)  # active, inactive

    # IANA name, e.g. "Europe/Kyiv" (never a fixed offset like "UTC+2")
    timezone: Mapped[str] = mapped_column(String(64), default=lambda: settings.default_club_timezone, nullable=False)
    default_currency: Mapped[str] = mapped_column(String(3), default=lambda: settings.default_currency, nullable=False)

    # Relationships
    organization: Mapped["Organization | None"] = relationship(back_populates="clubs")
    courts: Mapped[list["Court"]] = relationship(back_populates="club", lazy="selectin")
    business_hours: Mapped[list["BusinessHours"]] = relationship(back_populates="club", lazy="raise")
    special_hours: Mapped[list["SpecialHours"]] = relationship(back_populates="club", lazy="raise")

    def __repr__(self) -> str:
        return f"<Club {self.slug} ({self.timezone})>"


class Court(TimestampMixin, Base):
    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    court_type: Mapped[str | None] = mapped_column(String(50))  # e.g. "padel", "tennis"
    sport_type: Mapped[str] = mapped_column(String(30), default="PADEL", nullable=False)
    indoor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    default_price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Display ordering
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)

    club: Mapped["Club"] = relationship(back_populates="courts")

    __table_args__ = (Index("ix_courts_club_active", "club_id", "is_active"),)

    def __repr__(self) -> str:
        return f"<Court {self.name} @ club {self.club_id}>"
