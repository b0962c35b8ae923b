"""ViewCountRepository tests - an entity without soft deletes."""

import pytest

from fluentrepo.db.models import ViewCount
from fluentrepo.db.repositories import Repository
from fluentrepo.exceptions import ConfigurationError, NotFoundError


@pytest.fixture
def counters(view_count_repo, session):
    rows = [view_count_repo.create({"repository_id": rid, "count": c}) for rid, c in [(1, 5), (1, 2), (2, 9)]]
    session.commit()
    return rows


def test_create_defaults_count_to_zero(view_count_repo):
    assert view_count_repo.create({"repository_id": 7}).count == 0


def test_for_repository(view_count_repo, counters):
    assert sorted(vc.count for vc in view_count_repo.for_repository(1)) == [2, 5]


def test_increment_returns_affected_rows(view_count_repo, counters, session):
    assert view_count_repo.increment(1, 3) == 2
    session.expire_all()
    assert sorted(vc.count for vc in view_count_repo.for_repository(1)) == [5, 8]


def test_where_and_order_by(view_count_repo, counters):
    result = view_count_repo.where("count", 2, ">").order_by("count", "DESC").all()
    assert [vc.count for vc in result] == [9, 5]


def test_delete_removes_row_permanently(view_count_repo, counters):
    assert view_count_repo.delete(counters[0].id) == 1
    with pytest.raises(NotFoundError):
        view_count_repo.find(counters[0].id)


def test_trashed_directives_require_soft_deletes(view_count_repo, counters):
    with pytest.raises(ConfigurationError):
        view_count_repo.with_trashed().all()


def test_repository_rejects_non_entity_types(session):
    with pytest.raises(ConfigurationError):
        Repository(session, dict)


def test_repository_rejects_abstract_models(session):
    from fluentrepo.db.base import Base

    class AbstractThing(Base):
        __abstract__ = True

    with pytest.raises(ConfigurationError):
        Repository(session, AbstractThing)


def test_generic_repository_accepts_mapped_model(session, counters):
    repo = Repository(session, ViewCount)
    assert repo.where("repository_id", 2).first_or_fail().count == 9
