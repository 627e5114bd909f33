"""
Service Layer

RESPONSIBILITY: Wire acquisition, history, scoring and refinement into
one facade; own the refresh timers; expose the HTTP API.

WHAT THIS LAYER MUST NOT DO:
============================
- Implement scoring or parsing itself
- Block the event loop on oracle calls
"""

from .config import (
    AcquisitionConfig, EngineConfig, OracleConfig, RefreshConfig, ServiceConfig,
)
from .facade import AnimalitoService, PredictionSet, RefreshReport, create_service
from .refresh import RefreshScheduler

__all__ = [
    'AcquisitionConfig', 'EngineConfig', 'OracleConfig', 'RefreshConfig', 'ServiceConfig',
    'AnimalitoService', 'PredictionSet', 'RefreshReport', 'create_service',
    'RefreshScheduler',
]
