"""Hybrid OPR - per-robot scoring rates from alliance-level match scores."""
from hybridopr.hybridOpr import (
    HybridOprResult,
    RobotRate,
    attributeObservations,
    calcHybridOpr,
)
from hybridopr.observations import AllianceObservation, ScoutEntry, validateEntries

__all__ = [
    'AllianceObservation',
    'HybridOprResult',
    'RobotRate',
    'ScoutEntry',
    'attributeObservations',
    'calcHybridOpr',
    'validateEntries',
]
