"""Bounded speed heuristic for simulated trains.

Not a dynamics solver: it accelerates along a launch envelope, holds cruise
when far from a stop and limits speed to what service braking could shed
before the stop (v = sqrt(2ad)).
"""

import math

MAX_LINE_SPEED_KMH = 160.0
ACCELERATION_MS2 = 1.1
SERVICE_DECEL_MS2 = 1.2
EMERGENCY_DECEL_MS2 = 3.5
BRAKING_WINDOW_M = 2500.0
EMERGENCY_WINDOW_M = 50.0
LAUNCH_SECONDS = 120.0


def kmh_to_ms(kmh: float) -> float:
    return kmh * 1000.0 / 3600.0


def ms_to_kmh(ms: float) -> float:
    return ms * 3600.0 / 1000.0


def launch_envelope_kmh(seconds_in_motion: float, max_kmh: float) -> float:
    """Ease-in-out cubic from 0 to max_kmh over LAUNCH_SECONDS."""
    x = max(0.0, min(1.0, seconds_in_motion / LAUNCH_SECONDS))
    y = 4 * x**3 if x < 0.5 else 1 - (-2 * x + 2) ** 3 / 2
    return max_kmh * y


class SpeedEstimator:
    def __init__(self, max_line_speed_kmh: float = MAX_LINE_SPEED_KMH):
        self.max_line_speed_kmh = max_line_speed_kmh

    def next_speed(
        self,
        distance_to_next_stop_m: float,
        previous_speed_kmh: float,
        seconds_in_motion: float,
        gradient: float = 0.0,
    ) -> float:
        """Next speed in km/h, always within [0, max_line_speed_kmh].

        ``gradient`` is in permille, positive uphill.
        """
        distance = max(0.0, distance_to_next_stop_m)
        max_ms = kmh_to_ms(self.max_line_speed_kmh)
        current_ms = kmh_to_ms(max(0.0, previous_speed_kmh))

        grad_factor = 1 - (gradient / 1000) * 0.5
        accel = max(0.1, ACCELERATION_MS2 * grad_factor)
        decel = max(0.5, SERVICE_DECEL_MS2 / max(0.5, grad_factor))

        if distance <= EMERGENCY_WINDOW_M and current_ms > 1:
            desired_ms = max(0.0, current_ms - EMERGENCY_DECEL_MS2)
            desired_ms = min(desired_ms, math.sqrt(2 * decel * distance))
        elif distance <= BRAKING_WINDOW_M:
            desired_ms = min(current_ms, math.sqrt(2 * decel * distance))
        else:
            desired_ms = min(max_ms, current_ms + accel)

        launch_cap = kmh_to_ms(
            launch_envelope_kmh(seconds_in_motion, self.max_line_speed_kmh)
        )
        desired_ms = min(desired_ms, launch_cap)

        if not math.isfinite(desired_ms):
            desired_ms = 0.0
        return ms_to_kmh(max(0.0, min(desired_ms, max_ms)))
