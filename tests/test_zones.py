import pytest

import ledger
from models import ApprovedZone
from transitions import EventType
from zones import point_in_polygon, validate_location

# rough box around the Western Ghats in Kerala, [lon, lat]
KERALA = {
    "type": "Polygon",
    "coordinates": [[[76.0, 10.0], [77.0, 10.0], [77.0, 11.0], [76.0, 11.0], [76.0, 10.0]]],
}
WITH_HOLE = {
    "type": "Polygon",
    "coordinates": [
        [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]],
        [[4, 4], [6, 4], [6, 6], [4, 6], [4, 4]],
    ],
}


@pytest.fixture
def zones(db):
    db.add(ApprovedZone(zone_name="Western Ghats - Kerala", region="Southern India", state="Kerala",
                        coordinates=KERALA))
    db.add(ApprovedZone(zone_name="Northeast - Assam", region="Northeast India", state="Assam"))
    db.commit()


def test_point_in_polygon():
    assert point_in_polygon(76.5, 10.5, KERALA)
    assert not point_in_polygon(78.0, 10.5, KERALA)
    assert point_in_polygon(2, 2, WITH_HOLE)
    assert not point_in_polygon(5, 5, WITH_HOLE)


def test_multipolygon_and_unsupported_geometry():
    multi = {"type": "MultiPolygon", "coordinates": [WITH_HOLE["coordinates"], KERALA["coordinates"]]}
    assert point_in_polygon(76.5, 10.5, multi)
    with pytest.raises(ValueError):
        point_in_polygon(0, 0, {"type": "Point", "coordinates": [0, 0]})


def test_location_inside_an_approved_zone(db, zones):
    result = validate_location(db, 10.5, 76.5)
    assert result.is_valid
    assert result.zone_name == "Western Ghats - Kerala"


def test_location_outside_every_zone(db, zones):
    result = validate_location(db, 26.1, 91.7)
    assert not result.is_valid
    assert result.message.startswith("Warning")


def test_declared_zone_is_checked_first(db, zones):
    result = validate_location(db, 12.0, 76.5, zone_name="Western Ghats - Kerala")
    assert not result.is_valid
    assert "Western Ghats - Kerala" in result.message


def test_validation_is_deterministic(db, zones):
    results = {validate_location(db, 10.5, 76.5).is_valid for _ in range(20)}
    assert results == {True}


def test_out_of_zone_collection_is_recorded_with_warning(db, zones, collector, payloads):
    result = ledger.append_event(
        db, "HERB-Z", EventType.COLLECTION, collector, payloads[EventType.COLLECTION],
        location={"latitude": 26.1, "longitude": 91.7},
    )
    assert not result.zone_validation.is_valid
    assert result.zone_validation.message in result.warnings
    assert result.event.latitude == 26.1


def test_in_zone_collection_takes_zone_name(db, zones, collector, payloads):
    result = ledger.append_event(
        db, "HERB-Z", EventType.COLLECTION, collector, payloads[EventType.COLLECTION],
        location={"latitude": 10.5, "longitude": 76.5},
    )
    assert result.warnings == []
    assert result.event.zone == "Western Ghats - Kerala"
