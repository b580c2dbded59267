"""Cyclewise — menstrual cycle forecasting and clinical insight engine.

Subpackages:
    models/   — Stored user records and the immutable input snapshot
    engine/   — Pure forecasting, regularity and clinical-flag computation
    services/ — Key-value store accessor and reminder scheduling seam
"""

__version__ = "0.1.0"
