from fastapi import HTTPException
from sqlalchemy.orm import Query, Session


def scoped_query(db: Session, model, church_id: int) -> Query:
    """
    Base query for any tenant-owned table.

    Every read or write of church data starts here so that the church_id
    filter can never be forgotten.
    """
    return db.query(model).filter(model.church_id == church_id)


def get_scoped_or_404(db: Session, model, church_id: int, obj_id: int, label: str):
    obj = scoped_query(db, model, church_id).filter(model.id == obj_id).first()
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj
