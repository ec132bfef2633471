from fleet_pulse.roster import EntityStatus
from fleet_pulse.styles import STATUS_STYLES, UNKNOWN_STYLE, style_for


def test_every_status_has_a_style():
    for status in EntityStatus:
        assert style_for(status.value) == STATUS_STYLES[status.value]


def test_unknown_status_style():
    assert style_for("teleporting") == UNKNOWN_STYLE
