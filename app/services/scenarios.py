"""
Keyword lookup from a free-text scene description to a climate scenario.

Not wired into the compositor; kept as a helper for prompt experiments.
"""

from typing import Optional, Tuple

_HEAT = "extreme heat waves with scorching sun, drought conditions, wilted vegetation"

# Order matters: the first keyword found in the description wins.
WEATHER_SCENARIOS: Tuple[Tuple[str, str], ...] = (
    ("sunny", _HEAT),
    ("clear", _HEAT),
    ("bright", _HEAT),
    ("rainy", "severe flooding with water everywhere, heavy storms, submerged areas"),
    ("cloudy", "extreme storms with dark threatening clouds, heavy rain and flooding"),
    ("snowy", "complete ice age conditions with massive snowdrifts and frozen landscape"),
    ("windy", "devastating hurricane-force winds with debris flying, destroyed structures"),
    ("foggy", "thick toxic smog and pollution, apocalyptic atmosphere"),
)

DEFAULT_SCENARIO = (
    "extreme climate change effects with rising sea levels and environmental devastation"
)


def describe_climate_scenario(description: Optional[str]) -> str:
    """Return the scenario for the first weather keyword in `description`."""
    lowered = (description or "").lower()
    for keyword, scenario in WEATHER_SCENARIOS:
        if keyword in lowered:
            return scenario
    return DEFAULT_SCENARIO
