from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from churchflow.database import get_db
from churchflow.models import User, ChurchUser, ChurchRole
from churchflow.settings import settings
from churchflow.utils.auth import verify_access_token


# auto_error is off so that browser clients can fall back to the session
# cookie; a missing token in both places is reported below as 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# --- Authentication ---
def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Used to verify identity and that user exists in DB.

    The access token is read from the Authorization header first and from
    the session cookie second.
    """
    token = token or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(token)
    subject: str = payload.get("sub")
    if subject is None or not subject.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    # Check user still exists in the database
    user = db.query(User).filter(User.id == int(subject)).first()
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")

    return user


# --- Tenancy ---
def get_church_user(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> ChurchUser:
    """
    Resolves the church the current user works in.

    Users without a church association must complete onboarding first.
    """
    church_user = (
        db.query(ChurchUser)
        .filter(ChurchUser.user_id == user.id)
        .order_by(ChurchUser.id.asc())
        .first()
    )
    if not church_user:
        raise HTTPException(status_code=404, detail="Church not found")
    return church_user


# --- Authorization ---
def require_church_role(min_role: ChurchRole):
    """
    Returns a dependency that verifies the user's church role meets the minimum required role.
    """
    def dependency(church_user: ChurchUser = Depends(get_church_user)) -> ChurchUser:
        if church_user.role < min_role:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return church_user

    return dependency
