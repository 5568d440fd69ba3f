from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import Identity
from ...api.deps import get_current_identity
from ...schemas.registration import MileStoneResponse, MileStoneUpdate
from ...services.milestone_service import MilestoneService

router = APIRouter(prefix="/milestones", tags=["Milestones"])

@router.put("/{milestone_id}", response_model=MileStoneResponse)
async def update_milestone(
    milestone_id: int,
    milestone_data: MileStoneUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Edit or check a milestone (assigned doctor only)."""
    milestone = MilestoneService(db).update(
        milestone_id, milestone_data.activity, milestone_data.checked, identity
    )
    return MileStoneResponse.model_validate(milestone)

@router.delete("/{milestone_id}")
async def delete_milestone(
    milestone_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Delete a milestone (assigned doctor only)."""
    MilestoneService(db).delete(milestone_id, identity)
    return {"message": "Milestone deleted successfully"}
