from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from churchflow.exceptions import integrity_error_handler, validation_exception_handler
from churchflow.logging_config import configure_logging
from churchflow.routers import (
    activity,
    attendance,
    auth,
    checkin,
    church,
    communications,
    donations,
    events,
    groups,
    members,
    prayer_requests,
    public,
    reports,
    users,
    volunteers,
    website,
)
from churchflow.settings import settings

configure_logging()

app = FastAPI(
    title="ChurchFlow API",
    description="Multi-tenant church administration: members, events, giving and more",
    version="1.0.0",
)

# Ensure sensitive fields (e.g. password) don't show when invalid Pydantic model input
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(users.router, prefix="/api/user")
app.include_router(church.router, prefix="/api/church")
app.include_router(members.router, prefix="/api/members")
app.include_router(events.router, prefix="/api/events")
app.include_router(donations.router, prefix="/api/donations")
app.include_router(communications.router, prefix="/api/communications")
app.include_router(volunteers.router, prefix="/api/volunteers")
app.include_router(groups.router, prefix="/api/groups")
app.include_router(prayer_requests.router, prefix="/api/prayer-requests")
app.include_router(website.router, prefix="/api/website")
app.include_router(checkin.router, prefix="/api/checkin")
app.include_router(attendance.router, prefix="/api/attendance")
app.include_router(reports.router, prefix="/api/reports")
app.include_router(activity.router, prefix="/api/activity")
app.include_router(public.router, prefix="/c")
