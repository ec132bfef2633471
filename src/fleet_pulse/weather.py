import random
from dataclasses import dataclass
from enum import Enum


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"


SPEED_MODIFIERS: dict[WeatherCondition, float] = {
    WeatherCondition.CLEAR: 1.0,
    WeatherCondition.CLOUDY: 1.0,
    WeatherCondition.RAIN: 0.9,
    WeatherCondition.SNOW: 0.7,
    WeatherCondition.FOG: 0.8,
}


@dataclass(frozen=True)
class WeatherState:
    condition: WeatherCondition
    temperature_c: float = 15.0
    wind_speed_kmh: int = 0
    visibility_m: int = 10000
    precipitation_mm_h: float = 0.0


CLEAR = WeatherState(WeatherCondition.CLEAR)


class WeatherService:
    """Coarse random weather feeding a multiplicative speed factor."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def current_weather(self) -> WeatherState:
        rng = self._rng
        return WeatherState(
            condition=rng.choice(list(WeatherCondition)),
            temperature_c=round(rng.uniform(-5, 30), 1),
            wind_speed_kmh=round(rng.uniform(0, 60)),
            visibility_m=round(rng.uniform(0, 15000)),
            precipitation_mm_h=round(rng.uniform(0, 12), 1),
        )

    @staticmethod
    def speed_modifier(weather: WeatherState) -> float:
        return SPEED_MODIFIERS.get(weather.condition, 1.0)
