"""
PV analytics API package.

Stores periodic power/temperature telemetry from photovoltaic inverters and
answers analytical queries over it: daily maxima, daily averages and total
energy generated per inverter or per plant.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""
