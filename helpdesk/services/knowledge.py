from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from helpdesk.core.exceptions import NotFoundError, ValidationError
from helpdesk.core.permissions import Action, Resource, ensure_allowed
from helpdesk.core.schemas import PageParams
from helpdesk.models.knowledge import KnowledgeArticle, KnowledgeCategory
from helpdesk.models.user import User
from helpdesk.schemas.knowledge import ArticleCreate, ArticleUpdate
from helpdesk.services.base import BaseService


class KnowledgeService(BaseService):
    def __init__(self, db: Session, current_user: Optional[User] = None):
        super().__init__(db, current_user)

    def _query(self):
        return self.db.query(KnowledgeArticle).options(joinedload(KnowledgeArticle.creator))

    def get(self, article_id: int) -> KnowledgeArticle:
        article = self._query().filter(KnowledgeArticle.id == article_id).first()
        if article is None:
            raise NotFoundError("Knowledge article")
        return article

    def search(
        self,
        params: PageParams,
        search: Optional[str] = None,
        category: Optional[KnowledgeCategory] = None,
    ) -> Tuple[List[KnowledgeArticle], int]:
        query = self.db.query(KnowledgeArticle)
        if category:
            query = query.filter(KnowledgeArticle.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    KnowledgeArticle.title.ilike(pattern),
                    KnowledgeArticle.content.ilike(pattern),
                    KnowledgeArticle.keywords_text.ilike(pattern),
                )
            )
        total = query.count()
        articles = (
            query.options(joinedload(KnowledgeArticle.creator))
            .order_by(
                KnowledgeArticle.helpful_count.desc(),
                KnowledgeArticle.created_at.desc(),
                KnowledgeArticle.id.desc(),
            )
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        return articles, total

    def create(self, data: ArticleCreate) -> KnowledgeArticle:
        ensure_allowed(self.current_user, Resource.ARTICLE, Action.CREATE)
        article = KnowledgeArticle(
            title=data.title,
            content=data.content,
            category=data.category,
            created_by=self.current_user.id,
            helpful_count=0,
        )
        article.keywords = data.keywords
        self.db.add(article)
        self._commit(article)
        self.log_info("Knowledge article created", article_id=article.id)
        return article

    def update(self, article_id: int, data: ArticleUpdate) -> KnowledgeArticle:
        article = self.get(article_id)
        ensure_allowed(
            self.current_user,
            Resource.ARTICLE,
            Action.UPDATE,
            owner_id=article.created_by,
            message="Not authorized to update this article",
        )
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            raise ValidationError("No valid fields provided for update")
        for field, value in changes.items():
            setattr(article, field, value)
        self._commit(article)
        self.log_info("Knowledge article updated", article_id=article.id, fields=sorted(changes))
        return article

    def delete(self, article_id: int) -> None:
        article = self.get(article_id)
        ensure_allowed(
            self.current_user,
            Resource.ARTICLE,
            Action.DELETE,
            owner_id=article.created_by,
            message="Not authorized to delete this article",
        )
        self.db.delete(article)
        self._commit()
        self.log_info("Knowledge article deleted", article_id=article_id)

    def mark_helpful(self, article_id: int) -> int:
        """Increment in SQL so concurrent votes are never lost. No voter de-duplication."""
        updated = (
            self.db.query(KnowledgeArticle)
            .filter(KnowledgeArticle.id == article_id)
            .update(
                {KnowledgeArticle.helpful_count: KnowledgeArticle.helpful_count + 1},
                synchronize_session=False,
            )
        )
        if not updated:
            raise NotFoundError("Knowledge article")
        self._commit()
        return (
            self.db.query(KnowledgeArticle.helpful_count)
            .filter(KnowledgeArticle.id == article_id)
            .scalar()
        )
