"""Meter to building topology used to group submissions by building."""

from app.schemas.review import BuildingOption
from app.schemas.submission import BuildingRow, MeterRow, StallRow


def build_meter_building_index(
    stalls: list[StallRow],
    meters: list[MeterRow],
) -> dict[str, str]:
    """Map each meter id to its building id.

    A building reference on the meter itself wins over the stall's building.
    Meters with neither reference are left out; callers treat a missing key
    as an unknown building.
    """
    stall_to_building = {s.stall_id: s.building_id for s in stalls if s.building_id}

    meter_to_building: dict[str, str] = {}
    for meter in meters:
        building_id = meter.building_id
        if not building_id and meter.stall_id:
            building_id = stall_to_building.get(meter.stall_id)
        if building_id:
            meter_to_building[meter.meter_id] = building_id
    return meter_to_building


def building_labels(buildings: list[BuildingRow]) -> dict[str, str]:
    """Map building id to display label."""
    return {b.building_id: b.label for b in buildings}


def building_options(buildings: list[BuildingRow]) -> list[BuildingOption]:
    """Buildings in listing order, as filter choices."""
    return [BuildingOption(building_id=b.building_id, label=b.label) for b in buildings]
