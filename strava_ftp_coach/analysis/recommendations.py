"""Weekly workout recommendations from training metrics and the workout catalog."""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .catalog import CatalogWorkout, WorkoutCatalog
from .stress import WorkoutCategory
from .training_metrics import (
    HIGH_LOAD_RATIO,
    LOW_LOAD_RATIO,
    OVERREACHING_RATIO,
    TrainingMetrics,
    TrainingNeeds,
    calculate_optimal_tss,
    determine_training_needs,
)

logger = logging.getLogger(__name__)

HARD_CATEGORIES = (WorkoutCategory.THRESHOLD, WorkoutCategory.VO2MAX)
HARD_SESSION_TSS = 90

CATEGORY_REASONS = {
    WorkoutCategory.RECOVERY: "Active recovery session to promote adaptation and prevent overtraining.",
    WorkoutCategory.ENDURANCE: (
        "Aerobic base building. Critical for long-term fitness and recovery between hard sessions."
    ),
    WorkoutCategory.TEMPO: (
        "Sweet spot training for maximum fitness gains in minimum time. "
        "Highly effective for time-crunched athletes."
    ),
    WorkoutCategory.THRESHOLD: "FTP development. Improves sustainable power and race performance.",
    WorkoutCategory.VO2MAX: "High-intensity intervals to improve maximum aerobic capacity and top-end fitness.",
    WorkoutCategory.MIXED: "Comprehensive workout combining multiple intensity zones for complete fitness.",
}
DEFAULT_REASON = "Balanced training session."


@dataclass
class Recommendation:
    session_number: int
    workout: CatalogWorkout
    reason: str

    def to_dict(self) -> Dict:
        return {
            "session_number": self.session_number,
            "workout": self.workout.to_dict(),
            "reason": self.reason,
        }


class RecommendationEngine:
    """Match each planned session of a week with a catalog workout."""

    def __init__(
        self,
        metrics: TrainingMetrics,
        session_count: int,
        session_durations: List[float],
        catalog: Optional[WorkoutCatalog] = None,
    ):
        self.metrics = metrics
        self.session_count = session_count
        self.session_durations = session_durations
        self.catalog = catalog or WorkoutCatalog()

    def distribute_workout_types(self, needs: TrainingNeeds) -> List[WorkoutCategory]:
        """Lay out the week's categories, hard days separated by easy ones.

        Interval sessions are swapped for Tempo or Recovery when the load
        ratio signals overreaching.
        """
        primary = needs.primary_focus
        secondary = needs.secondary_focus
        n = self.session_count

        if n == 1:
            types = [primary]
        elif n == 2:
            types = [primary, WorkoutCategory.ENDURANCE]
        elif n == 3:
            types = [primary, WorkoutCategory.ENDURANCE, secondary]
        elif n == 4:
            types = [primary, WorkoutCategory.ENDURANCE, secondary, WorkoutCategory.RECOVERY]
        elif n == 5:
            types = [
                primary,
                WorkoutCategory.ENDURANCE,
                WorkoutCategory.TEMPO,
                WorkoutCategory.ENDURANCE,
                secondary,
            ]
        else:
            types = [
                primary,
                WorkoutCategory.ENDURANCE,
                WorkoutCategory.TEMPO,
                WorkoutCategory.ENDURANCE,
                secondary,
                WorkoutCategory.RECOVERY,
            ]
            types.extend([WorkoutCategory.ENDURANCE] * (n - len(types)))

        if self.metrics.training_load > OVERREACHING_RATIO:
            for i, category in enumerate(types):
                if category in HARD_CATEGORIES:
                    types[i] = WorkoutCategory.TEMPO if i % 2 == 0 else WorkoutCategory.RECOVERY

        return types

    def generate_reason(
        self,
        category: WorkoutCategory,
        session_number: int,
        total_sessions: int,
        needs: TrainingNeeds,
    ) -> str:
        reason = CATEGORY_REASONS.get(category, DEFAULT_REASON)

        if session_number == 1:
            reason += " Starting the week strong with a key workout."
        elif session_number == total_sessions:
            reason += " Perfect way to finish the week."
        elif session_number == math.ceil(total_sessions / 2):
            reason += " Mid-week session to maintain training stimulus."

        if self.metrics.training_load > HIGH_LOAD_RATIO:
            reason += " Intensity moderated due to accumulated fatigue."
        elif self.metrics.training_load < LOW_LOAD_RATIO:
            reason += " Time to push hard and build fitness."

        return reason

    def generate_recommendations(self) -> List[Recommendation]:
        """Generate one recommendation per session, numbered from 1."""
        needs = determine_training_needs(self.metrics)
        logger.info(
            f"Training focus {needs.primary_focus.value}/{needs.secondary_focus.value}: {needs.reasoning}"
        )
        types = self.distribute_workout_types(needs)

        recommendations = []
        for i in range(self.session_count):
            duration = self.session_durations[i]
            target_tss = calculate_optimal_tss(self.metrics, duration)
            workout = self.catalog.find_best_match(types[i], duration, target_tss)
            recommendations.append(Recommendation(
                session_number=i + 1,
                workout=workout,
                reason=self.generate_reason(types[i], i + 1, self.session_count, needs),
            ))

        if not self.validate_recommendations(recommendations):
            logger.warning("Recommended week falls outside the usual load guidelines")

        return recommendations

    def validate_recommendations(self, recommendations: List[Recommendation]) -> bool:
        """Check weekly TSS is plausible and hard sessions are not back to back."""
        total_tss = sum(r.workout.tss for r in recommendations)
        if not self.session_count * 20 <= total_tss <= self.session_count * 120:
            return False

        for current, following in zip(recommendations, recommendations[1:]):
            if (
                current.workout.tss > HARD_SESSION_TSS
                and following.workout.tss > HARD_SESSION_TSS
                and current.workout.category in HARD_CATEGORIES
                and following.workout.category in HARD_CATEGORIES
            ):
                return False

        return True
