"""
View count repository - counters keyed by repository_id.
"""

from sqlalchemy import update

from fluentrepo.db.models.view_count import ViewCount
from fluentrepo.db.repositories.base_repository import Repository


class ViewCountRepository(Repository[ViewCount]):
    def __init__(self, session):
        super().__init__(session, ViewCount)

    def for_repository(self, repository_id: int) -> list[ViewCount]:
        return self.find_all_by("repository_id", repository_id)

    def increment(self, repository_id: int, amount: int = 1) -> int:
        """Atomically add `amount` to every counter of a repository."""
        stmt = (
            update(ViewCount)
            .where(ViewCount.repository_id == repository_id)
            .values(count=ViewCount.count + amount)
        )
        return self.session.execute(stmt).rowcount
