import logging
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from fastapi.security import OAuth2PasswordRequestForm

from churchflow.database import get_db
from churchflow.models import User, SubscriptionTier
from churchflow.schemas.auth import (
    UserRegisterRequest,
    UserRegisterResponse,
    RefreshTokenRequest,
    TokenResponse,
    UserLogoutRequest,
    UserLogoutResponse,
)
from churchflow.utils.auth import (
    clear_session_cookie,
    find_refresh_token,
    hash_password,
    issue_tokens,
    set_session_cookie,
    verify_password,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.churches import create_church_for_owner

logger = logging.getLogger(__name__)

router = APIRouter()

REGISTRATION_MODULES = ["members", "events", "communications", "donations", "volunteers"]


@router.post("/register", status_code=201, response_model=UserRegisterResponse)
def register_user(data: UserRegisterRequest, db: Session = Depends(get_db)):
    # Check if email exists
    existing = db.query(User).filter(User.email == data.email).first()
    if existing:
        raise HTTPException(
            status_code=400, detail="An account with this email already exists"
        )

    new_user = User(
        name=data.name, email=data.email, hashed_password=hash_password(data.password)
    )
    db.add(new_user)
    db.flush()

    church = create_church_for_owner(
        db,
        new_user,
        data.church_name,
        tier=SubscriptionTier.standard,
        enabled_modules=REGISTRATION_MODULES,
        email=data.email,
    )
    log_activity(
        db, church.id, new_user.id, "CHURCH_CREATED", "Church", church.id,
        {"church_name": church.name},
    )

    db.commit()
    db.refresh(new_user)

    return {
        "message": "Account created successfully",
        "user_id": new_user.id,
        "church_id": church.id,
    }


@router.post("/login", response_model=TokenResponse)
def login(
    response: Response,
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.email == form.username.strip().lower()).first()

    if not user or not verify_password(form.password, user.hashed_password):
        logger.info("Failed login for %s", form.username)
        raise HTTPException(status_code=400, detail="Invalid credentials")

    tokens = issue_tokens(db, user)
    db.commit()

    set_session_cookie(response, tokens["access_token"])
    return tokens


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: RefreshTokenRequest, response: Response, db: Session = Depends(get_db)
):
    db_token = find_refresh_token(db, request.refresh_token)
    if not db_token:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    # -------- ROTATION --------
    db_token.revoked = True  # invalidate old token
    tokens = issue_tokens(db, db_token.user)
    db.commit()

    set_session_cookie(response, tokens["access_token"])
    return tokens


@router.post("/logout", response_model=UserLogoutResponse)
def logout(
    request: UserLogoutRequest, response: Response, db: Session = Depends(get_db)
):
    db_token = find_refresh_token(db, request.refresh_token, active_only=False)
    if db_token and not db_token.revoked:
        db_token.revoked = True
        db.commit()
        logger.info("Revoked refresh token for user id=%s", db_token.user_id)

    clear_session_cookie(response)
    return {"message": "Logged out"}
