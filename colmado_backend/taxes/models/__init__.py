# taxes/models/__init__.py

from taxes.models.itbis_period import ITBISPeriodSummary, ITBISRetention
from taxes.models.ncf import NCFRange, NCFUsage

__all__ = [
    "ITBISPeriodSummary",
    "ITBISRetention",
    "NCFRange",
    "NCFUsage",
]
