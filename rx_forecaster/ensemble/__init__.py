"""
Demand estimator ensemble.

Modules:
  estimators : trend, smoothing and cyclical estimators with flat fallback.
  combine    : weighted blend of estimator outputs.
"""
