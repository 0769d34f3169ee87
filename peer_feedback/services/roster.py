"""
Roster: the fixed table of employees who give and receive feedback.

Loaded once at process start and never mutated. Lookups are dictionary
backed, so both directions are O(1).
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from peer_feedback.core.config import settings

logger = logging.getLogger(__name__)


class RosterError(ValueError):
    pass


class Employee(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    number: int
    name: str
    designation: str


class Roster:
    def __init__(self, employees):
        self._employees: Tuple[Employee, ...] = tuple(employees)
        if not self._employees:
            raise RosterError("Roster is empty")

        self._by_id: Dict[int, Employee] = {}
        self._by_number: Dict[int, Employee] = {}
        for emp in self._employees:
            if emp.id in self._by_id:
                raise RosterError(f"Duplicate employee id {emp.id}")
            if emp.number in self._by_number:
                raise RosterError(f"Duplicate employee number {emp.number}")
            self._by_id[emp.id] = emp
            self._by_number[emp.number] = emp

    def __len__(self) -> int:
        return len(self._employees)

    def __iter__(self) -> Iterator[Employee]:
        return iter(self._employees)

    def find_by_number(self, number: Optional[int]) -> Optional[Employee]:
        # bool is an int subclass; True must not resolve employee #1
        if isinstance(number, bool) or not isinstance(number, int):
            return None
        return self._by_number.get(number)

    def find_by_id(self, employee_id: Optional[int]) -> Optional[Employee]:
        if isinstance(employee_id, bool) or not isinstance(employee_id, int):
            return None
        return self._by_id.get(employee_id)

    def others(self, employee_id: int) -> List[int]:
        """Ids of everyone an evaluator is expected to rate."""
        return [emp.id for emp in self._employees if emp.id != employee_id]

    def to_list(self) -> List[dict]:
        return [emp.model_dump() for emp in self._employees]


def load_roster(path: Union[str, Path]) -> Roster:
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RosterError(f"Could not read roster from {path}: {e}") from e

    if not isinstance(raw, list):
        raise RosterError(f"Roster file {path} must contain a JSON list")

    try:
        employees = [Employee.model_validate(item) for item in raw]
    except ValidationError as e:
        raise RosterError(f"Invalid roster entry in {path}: {e}") from e

    roster = Roster(employees)
    logger.info(f"Loaded roster of {len(roster)} employees from {path}")
    return roster


@lru_cache(maxsize=1)
def get_roster() -> Roster:
    """FastAPI dependency returning the process-wide roster."""
    return load_roster(settings.roster_file)
