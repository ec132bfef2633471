import json

import pytest

from fleet_pulse.config import DATA_DIR
from fleet_pulse.roster import Entity, EntityStatus, load_roster, parse_roster


def test_load_bundled_roster():
    roster = load_roster(str(DATA_DIR / "fleet.json"))
    assert len(roster) == 144
    assert len({r.id for r in roster}) == 144
    assert all(r.status is EntityStatus.ACTIVE for r in roster)


def test_load_roster_missing_file_is_empty(tmp_path):
    assert load_roster(str(tmp_path / "missing.json")) == []


def test_load_roster_malformed_file_is_empty(tmp_path):
    path = tmp_path / "fleet.json"
    path.write_text("{not json")
    assert load_roster(str(path)) == []


def test_parse_roster_accepts_line_key_and_status(tmp_path):
    path = tmp_path / "fleet.json"
    path.write_text(
        json.dumps(
            [
                {"id": "a", "routeId": "RE9"},
                {"id": "b", "line": "RE8", "status": "maintenance"},
                {"id": "c", "routeId": "RE8", "status": "exploded"},
            ]
        )
    )
    roster = load_roster(str(path))
    assert [(r.id, r.route_id, r.status) for r in roster] == [
        ("a", "RE9", EntityStatus.ACTIVE),
        ("b", "RE8", EntityStatus.MAINTENANCE),
        ("c", "RE8", EntityStatus.ACTIVE),
    ]


def test_parse_roster_numeric_ids():
    assert parse_roster([{"id": 7, "routeId": "A"}])[0].id == "7"


def test_entity_rejects_moving_non_active():
    with pytest.raises(ValueError):
        Entity("x", "A", EntityStatus.OFFLINE, 10.0, 48.0, 12.0, 0)


def test_entity_rejects_negative_speed():
    with pytest.raises(ValueError):
        Entity("x", "A", EntityStatus.ACTIVE, 10.0, 48.0, -1.0, 0)


@pytest.mark.parametrize(
    "payload",
    [{"trains": []}, ["RE9-1", "RE9-2"], "RE9-1", 42],
)
def test_load_roster_wrong_shape_is_empty(tmp_path, payload):
    path = tmp_path / "fleet.json"
    path.write_text(json.dumps(payload))
    assert load_roster(str(path)) == []


def test_parse_roster_skips_malformed_rows():
    roster = parse_roster(
        [{"id": "a", "routeId": "RE9"}, "b", None, {"routeId": "RE8"}, {"id": "c"}]
    )
    assert [r.id for r in roster] == ["a", "c"]
    assert roster[1].route_id == ""
