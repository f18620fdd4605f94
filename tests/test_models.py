"""
Tests for the SQLAlchemy models.

Validates table names, composite primary key, nullability, foreign keys with
ON DELETE CASCADE, and uniqueness constraints.

CHANGELOG:
- 2026-10-13: Add Plant and Inverter tests (STORY-106)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

import datetime

from sqlalchemy import DateTime, Double, inspect

from pv_analytics.db.models import Base, Inverter, InverterMetric, Plant


class TestInverterMetric:
    """Tests for the inverter_metrics reading table."""

    def test_table_name(self) -> None:
        assert InverterMetric.__tablename__ == "inverter_metrics"

    def test_composite_primary_key(self) -> None:
        """(inverter_id, ts) makes re-ingesting a reading a no-op."""
        pk = [col.name for col in inspect(InverterMetric).primary_key]
        assert pk == ["inverter_id", "ts"]

    def test_ts_is_timezone_aware(self) -> None:
        col = InverterMetric.__table__.c.ts
        assert isinstance(col.type, DateTime)
        assert col.type.timezone is True

    def test_metric_columns_nullable_doubles(self) -> None:
        for name in ("active_power_w", "temperature_c"):
            col = InverterMetric.__table__.c[name]
            assert isinstance(col.type, Double)
            assert col.nullable is True

    def test_inverter_fk_cascades(self) -> None:
        (fk,) = InverterMetric.__table__.c.inverter_id.foreign_keys
        assert fk.target_fullname == "inverters.id"
        assert fk.ondelete == "CASCADE"

    def test_repr(self) -> None:
        metric = InverterMetric(
            inverter_id=1,
            ts=datetime.datetime(2025, 1, 8, 9, tzinfo=datetime.UTC),
            active_power_w=10.0,
        )
        assert "inverter_id=1" in repr(metric)


class TestRegistryTables:
    """Tests for the plants and inverters tables."""

    def test_plant_name_unique(self) -> None:
        assert Plant.__table__.c.name.unique is True
        assert Plant.__table__.c.name.nullable is False

    def test_inverter_external_id_unique(self) -> None:
        assert Inverter.__table__.c.external_id.unique is True

    def test_inverter_plant_fk_cascades_and_is_indexed(self) -> None:
        col = Inverter.__table__.c.plant_id
        (fk,) = col.foreign_keys
        assert fk.target_fullname == "plants.id"
        assert fk.ondelete == "CASCADE"
        assert col.index is True

    def test_inverter_name_max_length(self) -> None:
        assert Inverter.__table__.c.name.type.length == 100

    def test_all_tables_registered(self) -> None:
        assert set(Base.metadata.tables) == {"plants", "inverters", "inverter_metrics"}
