import os
import json
import uuid
import logging
from dataclasses import dataclass
from typing import List, Optional, Any

from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from .models import CompletionRecord, Routine, RoutineExercise, WeekdaysSchedule

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.getenv("DATA_DIR", "data")
SEED_SAMPLE_ROUTINES = os.getenv("SEED_SAMPLE_ROUTINES", "true").strip().lower() in {"1", "true", "yes", "on"}

STORAGE_KEYS = {
    "WORKOUT_ROUTINES": "workout_routines",
    "WORKOUT_COMPLETIONS": "workout_completions",
}

_routines_adapter = TypeAdapter(List[Routine])
_completions_adapter = TypeAdapter(List[CompletionRecord])


class StorageError(Exception):
    """A storage key could not be read or written."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


@dataclass
class StoreConfig:
    data_dir: str = DEFAULT_DATA_DIR
    seed_sample_routines: bool = SEED_SAMPLE_ROUTINES


class JsonStore:
    """Key/value storage, one JSON document per key under ``data_dir``."""

    def __init__(self, cfg: Optional[StoreConfig] = None) -> None:
        self.cfg = cfg or StoreConfig()

    def _path(self, key: str) -> str:
        return os.path.join(self.cfg.data_dir, f"{key}.json")

    def get_item(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            raise StorageError(key, f"failed to read {path}: {e}") from e

    def set_item(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = f"{path}.tmp"
        try:
            os.makedirs(self.cfg.data_dir, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as fh:
                json.dump(value, fh, indent=2)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(key, f"failed to write {path}: {e}") from e
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)


def sample_routines() -> List[Routine]:
    return [
        Routine(
            id="1",
            name="Morning Strength",
            exercises=[
                RoutineExercise(id="1", name="Push-ups", sets=3, reps=15),
                RoutineExercise(id="2", name="Squats", sets=3, reps=20),
                RoutineExercise(id="3", name="Plank", duration=60),
            ],
            schedule=WeekdaysSchedule(weekdays=[1, 3, 5]),
        ),
        Routine(
            id="2",
            name="Cardio Session",
            exercises=[
                RoutineExercise(id="4", name="Running", duration=1800),
                RoutineExercise(id="5", name="Jumping Jacks", sets=3, reps=30),
            ],
            schedule=WeekdaysSchedule(weekdays=[2, 4]),
        ),
    ]


class RoutineStore:
    key = STORAGE_KEYS["WORKOUT_ROUTINES"]

    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def get_all(self) -> List[Routine]:
        raw = self.store.get_item(self.key)
        if raw is None:
            if not self.store.cfg.seed_sample_routines:
                return []
            routines = sample_routines()
            logger.info("No routines stored yet, seeding %d sample routines", len(routines))
            try:
                self.replace_all(routines)
            except StorageError as e:
                logger.error("Failed to persist sample routines: %s", e)
            return routines
        try:
            return _routines_adapter.validate_python(raw)
        except ValidationError as e:
            raise StorageError(self.key, f"malformed routine data: {e.error_count()} error(s)") from e

    def replace_all(self, routines: List[Routine]) -> None:
        self.store.set_item(self.key, _routines_adapter.dump_python(routines, mode="json"))


class CompletionStore:
    key = STORAGE_KEYS["WORKOUT_COMPLETIONS"]

    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def get_all(self) -> List[CompletionRecord]:
        raw = self.store.get_item(self.key)
        if raw is None:
            return []
        try:
            return _completions_adapter.validate_python(raw)
        except ValidationError as e:
            raise StorageError(self.key, f"malformed completion data: {e.error_count()} error(s)") from e

    def replace_all(self, records: List[CompletionRecord]) -> None:
        # whole-collection write, last writer wins
        self.store.set_item(self.key, _completions_adapter.dump_python(records, mode="json"))


def new_id() -> str:
    return str(uuid.uuid4())
