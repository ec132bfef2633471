"""Status to marker style lookup for the map layer."""

STATUS_STYLES: dict[str, dict[str, str]] = {
    "active": {"color": "#22C55E", "icon": "train"},
    "maintenance": {"color": "#F59E0B", "icon": "wrench"},
    "reserve": {"color": "#3B82F6", "icon": "pause"},
    "offline": {"color": "#6B7280", "icon": "power-off"},
    "alarm": {"color": "#EF4444", "icon": "alert"},
}

UNKNOWN_STYLE = {"color": "#9CA3AF", "icon": "help"}


def style_for(status: str) -> dict[str, str]:
    return STATUS_STYLES.get(status, UNKNOWN_STYLE)
