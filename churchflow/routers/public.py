from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.models import Church, DonationFund, Event, WebPage
from churchflow.schemas.public import (
    PublicEventsResponse,
    PublicGiveResponse,
    PublicHomeResponse,
    PublicPageResponse,
)
from churchflow.utils.codes import normalize_page_slug
from churchflow.utils.dates import utcnow
from churchflow.utils.tenancy import scoped_query

router = APIRouter()

HOME_EVENT_LIMIT = 3


def _church_by_slug(db: Session, slug: str) -> Church:
    church = db.query(Church).filter(Church.slug == slug).first()
    if not church:
        raise HTTPException(status_code=404, detail="Church not found")
    return church


def _published_pages(db: Session, church_id: int):
    return scoped_query(db, WebPage, church_id).filter(WebPage.is_published.is_(True))


def _navigation(db: Session, church_id: int) -> list[WebPage]:
    return (
        _published_pages(db, church_id)
        .filter(WebPage.show_in_nav.is_(True))
        .order_by(WebPage.order.asc(), WebPage.id.asc())
        .all()
    )


def _upcoming_events(db: Session, church_id: int, limit: int | None = None):
    query = (
        scoped_query(db, Event, church_id)
        .filter(
            Event.is_published.is_(True),
            Event.publish_to_website.is_(True),
            Event.start_date >= utcnow(),
        )
        .order_by(Event.start_date.asc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


@router.get("/{slug}", response_model=PublicHomeResponse)
def church_home(slug: str, db: Session = Depends(get_db)):
    church = _church_by_slug(db, slug)
    home_page = (
        _published_pages(db, church.id).filter(WebPage.is_home_page.is_(True)).first()
    )
    return {
        "church": church,
        "navigation": _navigation(db, church.id),
        "home_page": home_page,
        "upcoming_events": _upcoming_events(db, church.id, HOME_EVENT_LIMIT),
    }


@router.get("/{slug}/events", response_model=PublicEventsResponse)
def church_events(slug: str, db: Session = Depends(get_db)):
    church = _church_by_slug(db, slug)
    return {
        "church": church,
        "events": _upcoming_events(db, church.id),
        "ical_url": f"/api/events/ical?slug={church.slug}",
    }


@router.get("/{slug}/give", response_model=PublicGiveResponse)
def church_give(slug: str, db: Session = Depends(get_db)):
    church = _church_by_slug(db, slug)
    funds = (
        scoped_query(db, DonationFund, church.id)
        .filter(DonationFund.is_active.is_(True))
        .order_by(DonationFund.is_default.desc(), DonationFund.name.asc())
        .all()
    )
    return {"church": church, "funds": funds}


@router.get("/{slug}/pages/{page_slug:path}", response_model=PublicPageResponse)
def church_page(slug: str, page_slug: str, db: Session = Depends(get_db)):
    church = _church_by_slug(db, slug)
    page = (
        _published_pages(db, church.id)
        .filter(WebPage.slug == normalize_page_slug(page_slug))
        .first()
    )
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    return {"church": church, "navigation": _navigation(db, church.id), "page": page}
