"""
Seasonal profiles: the built-in Bangladesh table and the JSON loader.

Bangladesh has three demand seasons for pharmacies:

  winter  (Nov–Feb) → cold, flu, pneumonia, asthma: respiratory and
                      antihistamine demand rises.
  summer  (Mar–Jun) → heat stroke, dehydration, diarrhoea: ORS and
                      electrolyte demand nearly doubles.
  monsoon (Jul–Oct) → dengue, malaria, typhoid: antimalarial demand peaks.

The profile is plain data. Swap it for another region by pointing
``[data] seasonal_profile_file`` at a JSON file with the same shape::

    {
      "name": "bangladesh",
      "default_season": "winter",
      "seasons": [{"name": "winter", "months": [11, 12, 1, 2],
                   "diseases": ["cold"], "multipliers": {"Respiratory": 1.5}}],
      "weather": {"winter": {"temperature_impact": -0.2, ...}},
      "weather_rules": {"Respiratory": {"temperature": 0.5, "humidity": 0.3}}
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from rx_forecaster.models.seasonal import SeasonalProfile, SeasonBand, WeatherImpact, WeatherRule
from rx_forecaster.taxonomy.forecast_taxonomy import Season

logger = logging.getLogger(__name__)


BANGLADESH_PROFILE = SeasonalProfile(
    name="bangladesh",
    default_season=Season.WINTER.value,
    seasons=[
        SeasonBand(
            name=Season.WINTER.value,
            months=[11, 12, 1, 2],
            diseases=["cold", "flu", "pneumonia", "asthma", "arthritis"],
            multipliers={
                "Antibiotics": 1.3,
                "Antihistamines": 1.4,
                "Analgesics": 1.2,
                "Respiratory": 1.5,
                "Vitamins": 1.1,
            },
        ),
        SeasonBand(
            name=Season.SUMMER.value,
            months=[3, 4, 5, 6],
            diseases=["heat_stroke", "dehydration", "skin_infections", "diarrhea"],
            multipliers={
                "ORS": 1.8,
                "Antidiarrheals": 1.6,
                "Antibiotics": 1.2,
                "Sunscreen": 2.0,
                "Electrolytes": 1.7,
            },
        ),
        SeasonBand(
            name=Season.MONSOON.value,
            months=[7, 8, 9, 10],
            diseases=["dengue", "malaria", "typhoid", "waterborne_diseases"],
            multipliers={
                "Antimalarials": 1.9,
                "Antibiotics": 1.4,
                "Antipyretics": 1.3,
                "ORS": 1.5,
                "Antihistamines": 1.2,
            },
        ),
    ],
    weather={
        Season.WINTER.value: WeatherImpact(
            temperature_impact=-0.2,
            humidity_impact=0.1,
            rainfall_impact=0.0,
            seasonal_diseases=["cold", "flu", "pneumonia"],
            affected_classes=["Antibiotics", "Antihistamines", "Respiratory"],
        ),
        Season.SUMMER.value: WeatherImpact(
            temperature_impact=0.3,
            humidity_impact=0.2,
            rainfall_impact=-0.1,
            seasonal_diseases=["heat_stroke", "dehydration", "skin_infections"],
            affected_classes=["ORS", "Electrolytes", "Antidiarrheals"],
        ),
        Season.MONSOON.value: WeatherImpact(
            temperature_impact=0.1,
            humidity_impact=0.4,
            rainfall_impact=0.5,
            seasonal_diseases=["dengue", "malaria", "typhoid"],
            affected_classes=["Antimalarials", "Antibiotics", "Antipyretics"],
        ),
    },
    # Antipyretics and Antidiarrheals are weather-sensitive but have no
    # coefficients yet, so their weather multiplier stays at 1.0.
    weather_rules={
        "Respiratory": WeatherRule(temperature=0.5, humidity=0.3),
        "Antihistamines": WeatherRule(temperature=0.5, humidity=0.3),
        "ORS": WeatherRule(temperature=0.8),
        "Electrolytes": WeatherRule(temperature=0.8),
        "Antimalarials": WeatherRule(rainfall=0.6, humidity=0.4),
        "Antipyretics": WeatherRule(),
        "Antidiarrheals": WeatherRule(),
    },
)


def load_profile(path: Path) -> SeasonalProfile:
    """Load and validate a seasonal profile from a JSON file.

    Args:
        path: JSON file with the ``SeasonalProfile`` shape.

    Returns:
        Validated ``SeasonalProfile``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON or fails validation.
    """
    if not path.exists():
        raise FileNotFoundError(f"Seasonal profile not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in seasonal profile {path}: {exc}") from exc

    try:
        profile = SeasonalProfile.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Seasonal profile {path.name} failed validation:\n{exc}") from exc

    logger.info(
        "Loaded seasonal profile '%s' (%d seasons, %d weather-sensitive classes) from %s",
        profile.name, len(profile.seasons), len(profile.weather_rules), path.name,
    )
    return profile


def resolve_profile(profile_file: str = "") -> SeasonalProfile:
    """Return the profile at ``profile_file``, or the built-in one when empty."""
    if not profile_file:
        return BANGLADESH_PROFILE
    return load_profile(Path(profile_file))
