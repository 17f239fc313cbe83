"""
fitsim - Monte Carlo study of CFA fit statistics.

Cross sample size, model misspecification and non-normality; replicate,
fit, summarize.
"""

from fitsim.aggregate import summarize
from fitsim.engine import Parallelism, SimulationEngine
from fitsim.errors import (
    ConditionFailure,
    ConfigurationError,
    FitsimError,
    InvalidCovarianceError,
    NonConvergenceError,
    ReplicationError,
    ResumeStateError,
)
from fitsim.grid import Condition, DataType, ModelType, build_grid
from fitsim.models.results import ConditionSummary, FitStatistics
from fitsim.replication import ReplicationRunner
from fitsim.results import ResultsTable

__version__ = "0.1.0"
__all__ = [
    "ConditionFailure",
    "Condition",
    "ConditionSummary",
    "ConfigurationError",
    "DataType",
    "FitStatistics",
    "FitsimError",
    "InvalidCovarianceError",
    "ModelType",
    "NonConvergenceError",
    "Parallelism",
    "ReplicationError",
    "ReplicationRunner",
    "ResultsTable",
    "ResumeStateError",
    "SimulationEngine",
    "__version__",
    "build_grid",
    "summarize",
]
