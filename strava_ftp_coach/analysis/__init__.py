"""Analysis module for training load, FTP and weekly planning calculations."""

from .adaptive_plan import AdaptivePlan, InvalidPlanInputError, generate_adaptive_plan
from .catalog import CatalogExhaustedError, CatalogWorkout, WorkoutCatalog
from .ftp import FTPEstimate, estimate_ftp
from .readiness import ComplianceMetrics, ReadinessStatus, assess_readiness, calculate_compliance
from .records import ActivityRecord
from .recommendations import Recommendation, RecommendationEngine
from .stress import WorkoutCategory, calculate_tss, classify_workout
from .training_load import TrainingLoadSnapshot, calculate_training_load
from .training_metrics import TrainingMetrics, calculate_training_metrics

__all__ = [
    "ActivityRecord",
    "AdaptivePlan",
    "CatalogExhaustedError",
    "CatalogWorkout",
    "ComplianceMetrics",
    "FTPEstimate",
    "InvalidPlanInputError",
    "ReadinessStatus",
    "Recommendation",
    "RecommendationEngine",
    "TrainingLoadSnapshot",
    "TrainingMetrics",
    "WorkoutCatalog",
    "WorkoutCategory",
    "assess_readiness",
    "calculate_compliance",
    "calculate_training_load",
    "calculate_training_metrics",
    "calculate_tss",
    "classify_workout",
    "estimate_ftp",
    "generate_adaptive_plan",
]
