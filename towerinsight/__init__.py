"""
towerinsight - analytics core for telecom tower portfolios.

Turns tower, contract, landlord and payment records into chart-ready
series, aggregates, time-series, distributions and forecasts, and fronts
the natural-language assistant with a similarity-based response cache.
"""

__version__ = "0.1.0"
