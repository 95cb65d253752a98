"""
Auto-extend batch endpoint
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .schemas import AutoExtendRequest
from .system import LendingSystem, get_lending_system


router = APIRouter()


@router.post("")
async def run_auto_extend(
    request: Optional[AutoExtendRequest] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Extend every live auto-extend loan to the given date (default today)"""
    end_date = request.end_date if request else None
    report = system.auto_extend_runner.run(end_date=end_date)
    return report.to_dict()
