from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_current_user
from churchflow.models import User, ChurchUser, RefreshToken
from churchflow.schemas.auth import ChangePasswordRequest, ChangePasswordResponse
from churchflow.schemas.users import (
    ChurchMembershipSchema,
    UserProfileResponse,
    UserProfileUpdateRequest,
)
from churchflow.utils.auth import hash_password, verify_password

router = APIRouter()


def _profile(db: Session, user: User) -> UserProfileResponse:
    church_user = (
        db.query(ChurchUser)
        .filter(ChurchUser.user_id == user.id)
        .order_by(ChurchUser.id.asc())
        .first()
    )
    church = None
    if church_user:
        church = ChurchMembershipSchema(
            church_id=church_user.church.id,
            church_name=church_user.church.name,
            church_slug=church_user.church.slug,
            role=church_user.role,
        )
    return UserProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        church=church,
    )


@router.get("/profile", response_model=UserProfileResponse)
def get_profile(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return _profile(db, current_user)


@router.patch("/profile", response_model=UserProfileResponse)
def update_profile(
    data: UserProfileUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.email and data.email != current_user.email:
        taken = (
            db.query(User)
            .filter(User.email == data.email, User.id != current_user.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=400, detail="Email already in use")
        current_user.email = data.email

    if data.name:
        current_user.name = data.name

    db.commit()
    db.refresh(current_user)
    return _profile(db, current_user)


@router.patch("/password", response_model=ChangePasswordResponse)
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    if data.new_password != data.confirm_new_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")

    if data.new_password == data.current_password:
        raise HTTPException(
            status_code=400, detail="New password must differ from current password"
        )

    current_user.hashed_password = hash_password(data.new_password)

    # Force other sessions to log in again
    db.query(RefreshToken).filter(
        RefreshToken.user_id == current_user.id, RefreshToken.revoked.is_(False)
    ).update({RefreshToken.revoked: True}, synchronize_session=False)

    db.commit()
    return {"message": "Password updated successfully"}
