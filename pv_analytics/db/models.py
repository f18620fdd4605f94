"""
SQLAlchemy ORM models for the PV analytics database.

Defines plants, their inverters, and the inverter_metrics reading table.
Readings are stored in a TimescaleDB hypertable with a composite primary
key (inverter_id, ts) so that ingesting the same reading twice is a no-op.

CHANGELOG:
- 2026-10-13: Add Plant and Inverter registry tables (STORY-106)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

import datetime

from sqlalchemy import DateTime, Double, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


class Plant(Base):
    """A photovoltaic power plant owning a set of inverters.

    Attributes:
        id: Internal plant id.
        name: Unique plant name.
        created_at: Row creation time (server default).
        updated_at: Last update time (server default, bumped on update).
        inverters: Inverters that belong to the plant.
    """

    __tablename__ = "plants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    inverters: Mapped[list["Inverter"]] = relationship(
        back_populates="plant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """Return string representation of the Plant."""
        return f"Plant(id={self.id!r}, name={self.name!r})"


class Inverter(Base):
    """An inverter producing readings, attached to one plant.

    Attributes:
        id: Internal inverter id used by the analytics endpoints.
        external_id: Id used by the telemetry source (unique, >= 1).
        name: Descriptive name (max 100 characters).
        plant_id: Owning plant.
        created_at: Row creation time (server default).
        updated_at: Last update time (server default, bumped on update).
    """

    __tablename__ = "inverters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    plant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("plants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    plant: Mapped[Plant] = relationship(back_populates="inverters")

    def __repr__(self) -> str:
        """Return string representation of the Inverter."""
        return (
            f"Inverter(id={self.id!r}, external_id={self.external_id!r}, "
            f"plant_id={self.plant_id!r})"
        )


class InverterMetric(Base):
    """Power/temperature reading from an inverter.

    Attributes:
        inverter_id: Internal id of the inverter.
        ts: Measurement timestamp in UTC.
        active_power_w: Active power in watts (nullable).
        temperature_c: Inverter temperature in Celsius (nullable).
        ingested_at: Time the row was written (server default).
    """

    __tablename__ = "inverter_metrics"

    inverter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("inverters.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    ts: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
        nullable=False,
    )
    active_power_w: Mapped[float | None] = mapped_column(Double, nullable=True)
    temperature_c: Mapped[float | None] = mapped_column(Double, nullable=True)
    ingested_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of the InverterMetric."""
        return (
            f"InverterMetric(inverter_id={self.inverter_id!r}, "
            f"ts={self.ts!r}, active_power_w={self.active_power_w!r})"
        )
