"""
Environmental demand adjustment: seasonal, weather and market multipliers.

Modules:
  profiles : built-in seasonal profile and JSON profile loader.
  market   : market trend providers.
  adjuster : per-class multiplier resolution and forecast scaling.
"""
