from typing import List

from fastapi import APIRouter, Depends

from peer_feedback.schemas.feedback import EmployeeOut
from peer_feedback.services.roster import Roster, get_roster

router = APIRouter(tags=["employees"])


@router.get("/employees", response_model=List[EmployeeOut])
def list_employees(roster: Roster = Depends(get_roster)):
    return roster.to_list()
