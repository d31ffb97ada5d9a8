from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import require_church_role
from churchflow.models import ActivityLog, ChurchRole, ChurchUser
from churchflow.schemas.activity import ActivityListFilters, ActivityListResponse
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import scoped_query

router = APIRouter()


@router.get("", response_model=ActivityListResponse)
def list_activity(
    filter_query: Annotated[ActivityListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.staff)),
):
    query = scoped_query(db, ActivityLog, church_user.church_id).options(
        joinedload(ActivityLog.user)
    )
    if filter_query.entity_type:
        query = query.filter(ActivityLog.entity_type == filter_query.entity_type)
    if filter_query.action:
        query = query.filter(ActivityLog.action == filter_query.action)

    query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    items, pagination = paginate(query, filter_query.page, filter_query.limit)
    return {"items": items, "pagination": pagination}
