"""
forecastflow - multi-horizon direct forecasting workflow

Modules:
- forecastflow: Lagged datasets, validation windows, callback-driven
  training/prediction, error reporting and plots
"""
