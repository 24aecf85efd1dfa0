from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.limiter import limiter
from helpdesk.core.schemas import MessageResponse, PageParams, Pagination
from helpdesk.database import get_db
from helpdesk.dependencies import get_current_user
from helpdesk.models.knowledge import KnowledgeCategory
from helpdesk.models.user import User
from helpdesk.schemas.knowledge import (
    ArticleCreate,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdate,
    HelpfulResponse,
)
from helpdesk.services.knowledge import KnowledgeService

router = APIRouter(prefix="/knowledge-base", tags=["knowledge-base"])


@router.get("", response_model=ArticleListResponse)
def list_articles(
    search: Optional[str] = None,
    category: Optional[KnowledgeCategory] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """Public search over title, content and keywords, most helpful first."""
    params = PageParams(page=page, limit=limit)
    articles, total = KnowledgeService(db).search(params, search=search, category=category)
    return ArticleListResponse(
        data=[ArticleResponse.model_validate(a) for a in articles],
        pagination=Pagination.build(total, params),
    )


@router.get("/{article_id}", response_model=ArticleResponse)
def get_article(article_id: int, db: Session = Depends(get_db)):
    return KnowledgeService(db).get(article_id)


@router.post("", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
def create_article(
    article_data: ArticleCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return KnowledgeService(db, current_user).create(article_data)


@router.put("/{article_id}", response_model=ArticleResponse)
def update_article(
    article_id: int,
    article_data: ArticleUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return KnowledgeService(db, current_user).update(article_id, article_data)


@router.delete("/{article_id}", response_model=MessageResponse)
def delete_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    KnowledgeService(db, current_user).delete(article_id)
    return MessageResponse(message="Article deleted successfully")


@router.post("/{article_id}/helpful", response_model=HelpfulResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
def mark_helpful(request: Request, article_id: int, db: Session = Depends(get_db)):
    """Anonymous vote. Every call counts."""
    count = KnowledgeService(db).mark_helpful(article_id)
    return HelpfulResponse(helpful_count=count)
