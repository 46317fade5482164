"""
Stocking recommendations from adjusted demand forecasts.

Modules:
  scorer   : action, quantities, urgency, risk factors, confidence, trend.
  ranker   : aggregator ordering and priority buckets.
  reporter : market insights, dashboard summary, CSV / JSON writers.
"""
