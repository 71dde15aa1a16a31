"""Structured workout catalog and best-match search."""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..db.models import Workout
from .stress import WorkoutCategory

logger = logging.getLogger(__name__)

# Duration tolerances (minutes) for the first and widened search passes
DURATION_TOLERANCE = 15
WIDE_DURATION_TOLERANCE = 30


class CatalogExhaustedError(Exception):
    """No workouts in the database or the built-in library."""
    pass


@dataclass(frozen=True)
class CatalogWorkout:
    name: str
    url: str
    duration: int  # minutes
    category: WorkoutCategory
    tss: int
    description: str = ""
    intervals: Optional[List[Dict]] = field(default=None, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict) -> "CatalogWorkout":
        """Build from an import entry (``type`` or ``category`` key accepted)."""
        if not data["name"] or not data["url"]:
            raise ValueError("name and url are required")
        return cls(
            name=data["name"],
            url=data["url"],
            duration=int(data["duration"]),
            category=WorkoutCategory.parse(data.get("category") or data["type"]),
            tss=int(data.get("tss") or 0),
            description=data.get("description") or "",
            intervals=data.get("intervals"),
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "url": self.url,
            "duration": self.duration,
            "type": self.category.value,
            "tss": self.tss,
            "description": self.description,
        }


def _workout(name, slug, duration, category, tss, description) -> CatalogWorkout:
    return CatalogWorkout(
        name=name,
        url=f"https://whatsonzwift.com/workouts/{slug}",
        duration=duration,
        category=category,
        tss=tss,
        description=description,
    )


# Used when the database catalog is empty
FALLBACK_WORKOUTS: List[CatalogWorkout] = [
    # Recovery
    _workout("Easy Spin", "easy-spin", 30, WorkoutCategory.RECOVERY, 20,
             "Light spinning at 50-60% FTP. Perfect for active recovery."),
    _workout("Recovery Ride", "recovery-ride", 45, WorkoutCategory.RECOVERY, 28,
             "Easy-paced recovery ride to promote blood flow and adaptation."),
    # Endurance
    _workout("Foundation", "foundation", 60, WorkoutCategory.ENDURANCE, 55,
             "Steady endurance ride at 65-75% FTP to build aerobic base."),
    _workout("Long Steady", "long-steady", 90, WorkoutCategory.ENDURANCE, 75,
             "Extended endurance session for building aerobic capacity."),
    _workout("Aerobic Ride", "aerobic-ride", 75, WorkoutCategory.ENDURANCE, 65,
             "Comfortable aerobic pace with slight variations in intensity."),
    # Tempo
    _workout("Tempo Builder", "tempo-builder", 60, WorkoutCategory.TEMPO, 70,
             "3x10min at 80-85% FTP. Builds sustainable power."),
    _workout("Sweet Spot Short", "sweet-spot-short", 45, WorkoutCategory.TEMPO, 60,
             "2x15min at 88-93% FTP. Efficient fitness building."),
    _workout("Sweet Spot", "sweet-spot", 60, WorkoutCategory.TEMPO, 75,
             "3x12min at 88-93% FTP. The sweet spot for time-crunched athletes."),
    # Threshold
    _workout("FTP Booster", "ftp-booster", 45, WorkoutCategory.THRESHOLD, 65,
             "2x12min at 95-100% FTP. Classic threshold intervals."),
    _workout("Threshold Builder", "threshold-builder", 60, WorkoutCategory.THRESHOLD, 80,
             "3x10min at 95-105% FTP with short recoveries."),
    _workout("Over-Unders", "over-unders", 60, WorkoutCategory.THRESHOLD, 85,
             "Alternating intervals above and below FTP. Brutal but effective."),
    _workout("FTP Test Prep", "ftp-test-prep", 75, WorkoutCategory.THRESHOLD, 90,
             "2x20min at FTP. Perfect for testing or improving threshold."),
    # VO2Max
    _workout("VO2 Max Short", "vo2max-short", 45, WorkoutCategory.VO2MAX, 70,
             "5x3min at 110-120% FTP. Improves maximal oxygen uptake."),
    _workout("VO2 Booster", "vo2-booster", 60, WorkoutCategory.VO2MAX, 85,
             "6x4min at 110-115% FTP. Classic VO2max development."),
    _workout("Tabata Intervals", "tabata", 45, WorkoutCategory.VO2MAX, 75,
             "20 seconds hard, 10 seconds easy. The ultimate HIIT workout."),
    _workout("Microbursts", "microbursts", 60, WorkoutCategory.VO2MAX, 80,
             "15 seconds on, 15 seconds off at 150% FTP. Develops peak power."),
    # Mixed / specialty
    _workout("Time Crunched 30", "time-crunched-30", 30, WorkoutCategory.THRESHOLD, 45,
             "High-efficiency workout for busy athletes. Mix of tempo and threshold."),
    _workout("Time Crunched 45", "time-crunched-45", 45, WorkoutCategory.MIXED, 60,
             "Maximum training stimulus in minimum time. Sweet spot and threshold."),
    _workout("Pyramid", "pyramid", 60, WorkoutCategory.MIXED, 75,
             "Progressive intervals from 1 to 5 minutes and back down."),
    _workout("The Gorby", "gorby", 90, WorkoutCategory.MIXED, 95,
             "Mix of endurance, tempo, and threshold. Complete workout."),
]

# Categories accepted when the requested one has nothing near the target duration
RELATED_CATEGORIES: Dict[WorkoutCategory, List[WorkoutCategory]] = {
    WorkoutCategory.RECOVERY: [WorkoutCategory.RECOVERY, WorkoutCategory.ENDURANCE],
    WorkoutCategory.ENDURANCE: [WorkoutCategory.ENDURANCE, WorkoutCategory.TEMPO, WorkoutCategory.RECOVERY],
    WorkoutCategory.TEMPO: [WorkoutCategory.TEMPO, WorkoutCategory.THRESHOLD, WorkoutCategory.ENDURANCE],
    WorkoutCategory.THRESHOLD: [WorkoutCategory.THRESHOLD, WorkoutCategory.TEMPO, WorkoutCategory.VO2MAX],
    WorkoutCategory.VO2MAX: [WorkoutCategory.VO2MAX, WorkoutCategory.THRESHOLD, WorkoutCategory.MIXED],
    WorkoutCategory.MIXED: [WorkoutCategory.MIXED, WorkoutCategory.THRESHOLD, WorkoutCategory.TEMPO],
}


def related_categories(category: WorkoutCategory) -> List[WorkoutCategory]:
    return RELATED_CATEGORIES.get(category, [category])


def _matches(
    workout: CatalogWorkout,
    category: Optional[WorkoutCategory],
    min_duration: Optional[float],
    max_duration: Optional[float],
    min_tss: Optional[float],
    max_tss: Optional[float],
) -> bool:
    if category is not None and workout.category != category:
        return False
    if min_duration is not None and workout.duration < min_duration:
        return False
    if max_duration is not None and workout.duration > max_duration:
        return False
    if min_tss is not None and workout.tss < min_tss:
        return False
    if max_tss is not None and workout.tss > max_tss:
        return False
    return True


class WorkoutCatalog:
    """Workout library backed by the ``workouts`` table.

    The built-in library is used whenever the table is empty or no database
    is configured.
    """

    def __init__(self, db=None, fallback: Optional[List[CatalogWorkout]] = None):
        self.db = db
        self.fallback = FALLBACK_WORKOUTS if fallback is None else fallback

    def _stored_workouts(self) -> List[CatalogWorkout]:
        if self.db is None:
            return []

        with self.db.get_session() as session:
            rows = session.query(Workout).order_by(Workout.type, Workout.duration).all()
            return [
                CatalogWorkout(
                    name=row.name,
                    url=row.url,
                    duration=row.duration,
                    category=WorkoutCategory.parse(row.type),
                    tss=row.tss or 0,
                    description=row.description or "",
                    intervals=json.loads(row.intervals) if row.intervals else None,
                )
                for row in rows
            ]

    def all_workouts(self) -> List[CatalogWorkout]:
        stored = self._stored_workouts()
        if stored:
            return stored

        logger.debug("No workouts in database, using built-in library")
        return list(self.fallback)

    def get_workouts(
        self,
        category: Optional[WorkoutCategory] = None,
        min_duration: Optional[float] = None,
        max_duration: Optional[float] = None,
        min_tss: Optional[float] = None,
        max_tss: Optional[float] = None,
    ) -> List[CatalogWorkout]:
        """Workouts matching all of the given filters."""
        return [
            workout for workout in self.all_workouts()
            if _matches(workout, category, min_duration, max_duration, min_tss, max_tss)
        ]

    def import_workouts(self, entries: Iterable[Dict]) -> Dict[str, int]:
        """Insert or update workouts keyed by URL.

        Returns:
            Counts of created, updated and skipped entries
        """
        if self.db is None:
            raise ValueError("A database is required to import workouts")

        stats = {"created": 0, "updated": 0, "skipped": 0}
        with self.db.get_session() as session:
            for entry in entries:
                if not isinstance(entry, dict):
                    logger.warning(f"Skipping catalog entry {entry!r}: not an object")
                    stats["skipped"] += 1
                    continue

                try:
                    workout = CatalogWorkout.from_dict(entry)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping catalog entry {entry.get('name', '?')}: {e}")
                    stats["skipped"] += 1
                    continue

                row = session.query(Workout).filter_by(url=workout.url).first()
                if row is None:
                    row = Workout(url=workout.url)
                    session.add(row)
                    stats["created"] += 1
                else:
                    stats["updated"] += 1

                row.name = workout.name
                row.duration = workout.duration
                row.type = workout.category.value
                row.tss = workout.tss
                row.description = workout.description
                row.intervals = json.dumps(workout.intervals) if workout.intervals else None

        logger.info(
            f"Imported workouts: {stats['created']} created, "
            f"{stats['updated']} updated, {stats['skipped']} skipped"
        )
        return stats

    def find_best_match(
        self,
        category: WorkoutCategory,
        duration: float,
        target_tss: float,
    ) -> CatalogWorkout:
        """Closest workout for a session, widening the search until one exists.

        Search order:
            1. Same category within 15 minutes
            2. Related categories within 15 minutes
            3. Same category within 30 minutes
            4. Same category, any duration
            5. Whole catalog

        Candidates are ranked by |duration difference| + |TSS difference|.

        Raises:
            CatalogExhaustedError: If the catalog is completely empty
        """
        workouts = self.all_workouts()

        def within(tolerance, categories):
            return [
                w for w in workouts
                if w.category in categories and abs(w.duration - duration) <= tolerance
            ]

        candidates = within(DURATION_TOLERANCE, [category])
        if not candidates:
            candidates = within(DURATION_TOLERANCE, related_categories(category))
        if not candidates:
            candidates = within(WIDE_DURATION_TOLERANCE, [category])
        if not candidates:
            candidates = [w for w in workouts if w.category == category]
        if not candidates:
            logger.warning(f"No workouts found for type {category.value}, using any available workout")
            candidates = workouts

        if not candidates:
            raise CatalogExhaustedError("No workouts available in database or built-in library")

        return min(candidates, key=lambda w: abs(w.duration - duration) + abs(w.tss - target_tss))
