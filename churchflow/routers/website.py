import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_church_user, require_church_role
from churchflow.models import Church, ChurchRole, ChurchUser, MediaFile, WebPage
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.website import (
    MediaCreateRequest,
    MediaListResponse,
    MediaSchema,
    PageCreateRequest,
    PageSchema,
    PageSummarySchema,
    PageUpdateRequest,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.blocks import PageEditor
from churchflow.utils.codes import normalize_page_slug
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()

BYTES_PER_MB = 1024 * 1024


def _slug_taken(db: Session, church_id: int, slug: str, exclude_id: int | None = None):
    query = scoped_query(db, WebPage, church_id).filter(WebPage.slug == slug)
    if exclude_id is not None:
        query = query.filter(WebPage.id != exclude_id)
    return db.query(query.exists()).scalar()


def _unset_home_page(
    db: Session, church_id: int, exclude_id: int | None = None
) -> None:
    query = scoped_query(db, WebPage, church_id).filter(WebPage.is_home_page.is_(True))
    if exclude_id is not None:
        query = query.filter(WebPage.id != exclude_id)
    query.update({WebPage.is_home_page: False}, synchronize_session=False)


def _blocks_json(blocks) -> str:
    return PageEditor([b.model_dump() for b in blocks]).to_json()


# --- Pages ---
@router.get("/pages", response_model=list[PageSummarySchema])
def list_pages(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return (
        scoped_query(db, WebPage, church_user.church_id)
        .order_by(WebPage.is_home_page.desc(), WebPage.order.asc(), WebPage.id.asc())
        .all()
    )


@router.post("/pages", status_code=status.HTTP_201_CREATED, response_model=PageSchema)
def create_page(
    data: PageCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.admin)),
):
    church_id = church_user.church_id
    slug = normalize_page_slug(data.slug)
    if _slug_taken(db, church_id, slug):
        raise HTTPException(status_code=400, detail="A page with this URL already exists")

    if data.is_home_page:
        _unset_home_page(db, church_id)

    last_order = (
        scoped_query(db, WebPage, church_id)
        .with_entities(func.max(WebPage.order))
        .scalar()
    )
    page = WebPage(
        church_id=church_id,
        title=data.title,
        slug=slug,
        template=data.template,
        content=_blocks_json(data.content),
        meta_title=data.meta_title,
        meta_description=data.meta_description,
        is_home_page=data.is_home_page,
        is_published=data.is_published,
        show_in_nav=data.show_in_nav,
        order=(last_order or 0) + 1,
    )
    db.add(page)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "PAGE_CREATED", "WebPage", page.id,
        {"title": page.title, "slug": page.slug},
    )
    db.commit()
    db.refresh(page)
    return page


@router.get("/pages/{page_id}", response_model=PageSchema)
def get_page(
    page_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return get_scoped_or_404(db, WebPage, church_user.church_id, page_id, "Page")


@router.patch("/pages/{page_id}", response_model=PageSchema)
def update_page(
    page_id: int,
    data: PageUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.admin)),
):
    church_id = church_user.church_id
    page = get_scoped_or_404(db, WebPage, church_id, page_id, "Page")
    updates = data.model_dump(exclude_unset=True)

    if updates.get("slug"):
        slug = normalize_page_slug(updates["slug"])
        if _slug_taken(db, church_id, slug, page.id):
            raise HTTPException(
                status_code=400, detail="A page with this URL already exists"
            )
        page.slug = slug
    if updates.get("is_home_page"):
        _unset_home_page(db, church_id, exclude_id=page.id)
    if data.content is not None:
        page.content = _blocks_json(data.content)

    for field, value in updates.items():
        if field in ("slug", "content"):
            continue
        if value is None and field not in ("meta_title", "meta_description"):
            continue
        setattr(page, field, value)
    log_activity(
        db, church_id, church_user.user_id, "PAGE_UPDATED", "WebPage", page.id,
        {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(page)
    return page


@router.delete("/pages/{page_id}", response_model=SuccessResponse)
def delete_page(
    page_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.admin)),
):
    church_id = church_user.church_id
    page = get_scoped_or_404(db, WebPage, church_id, page_id, "Page")
    db.delete(page)
    log_activity(
        db, church_id, church_user.user_id, "PAGE_DELETED", "WebPage", page_id,
        {"title": page.title},
    )
    db.commit()
    return {"success": True}


# --- Media ---
def _storage_used(db: Session, church_id: int) -> int:
    used = (
        scoped_query(db, MediaFile, church_id)
        .with_entities(func.coalesce(func.sum(MediaFile.size), 0))
        .scalar()
    )
    return int(used or 0)


@router.get("/media", response_model=MediaListResponse)
def list_media(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    church = db.query(Church).filter(Church.id == church_id).one()
    items = (
        scoped_query(db, MediaFile, church_id)
        .order_by(MediaFile.created_at.desc(), MediaFile.id.desc())
        .all()
    )
    return {
        "items": items,
        "storage_used": _storage_used(db, church_id),
        "storage_limit": church.max_storage * BYTES_PER_MB,
    }


@router.post("/media", status_code=status.HTTP_201_CREATED, response_model=MediaSchema)
def create_media(
    data: MediaCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """Registers an uploaded file. The upload itself happens client side."""
    church_id = church_user.church_id
    church = db.query(Church).filter(Church.id == church_id).one()

    if _storage_used(db, church_id) + data.size > church.max_storage * BYTES_PER_MB:
        raise HTTPException(
            status_code=403, detail="Storage limit reached. Please upgrade your plan."
        )

    media = MediaFile(
        church_id=church_id, uploaded_by=church_user.user_id, **data.model_dump()
    )
    db.add(media)
    db.commit()
    db.refresh(media)
    return media


@router.delete("/media/{media_id}", response_model=SuccessResponse)
def delete_media(
    media_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    media = get_scoped_or_404(db, MediaFile, church_user.church_id, media_id, "Media")
    db.delete(media)
    db.commit()
    return {"success": True}
