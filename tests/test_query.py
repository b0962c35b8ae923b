"""
QueryHandle tests - clause folding, soft-delete scope and terminal methods.
"""

import pytest
from sqlalchemy.exc import InvalidRequestError

from fluentrepo.db.models import User, ViewCount
from fluentrepo.db.query import EntityAccessor, normalize_operator
from fluentrepo.exceptions import ConfigurationError, NotFoundError


@pytest.fixture
def accessor(session):
    return EntityAccessor(session, User)


def names(entities) -> list[str]:
    return sorted(entity.user_name for entity in entities)


def test_accessor_detects_soft_deletes(session):
    assert EntityAccessor(session, User).soft_deletes is True
    assert EntityAccessor(session, User).deleted_at_column == "deleted_at"
    assert EntityAccessor(session, ViewCount).soft_deletes is False


def test_new_query_returns_independent_handles(accessor):
    first = accessor.new_query().where("customer_name", "=", "Acme")
    second = accessor.new_query()
    assert first is not second
    assert second.criteria() is not None  # soft-delete scope only
    assert str(second.criteria()) == "users.deleted_at IS NULL"


def test_clauses_fold_left_to_right(accessor, users):
    # (Acme OR Initech) AND location = Oslo
    query = (
        accessor.new_query()
        .where("customer_name", "=", "Acme")
        .or_where("customer_name", "=", "Initech")
        .where("location", "=", "Oslo")
    )
    assert names(query.get()) == ["bob"]


def test_soft_delete_scope_wraps_disjunction(accessor, users):
    query = accessor.new_query().where("customer_name", "=", "Acme").or_where("customer_name", "=", "Globex")
    assert names(query.get()) == ["alice", "bob", "dave"]


def test_where_nested_groups_clauses(accessor, users):
    query = accessor.new_query().with_trashed().where("customer_name", "=", "Acme")
    query.where_nested(lambda q: q.where_null("deleted_at").or_where_not_null("deleted_at"))
    assert names(query.get()) == ["alice", "bob", "carol"]


def test_where_null_and_not_null(accessor, users):
    assert names(accessor.new_query().where_null("website").get()) == ["alice", "bob", "dave"]
    assert names(accessor.new_query().where_not_null("website").get()) == ["frank"]


def test_equality_with_none_matches_null(accessor, users):
    assert names(accessor.new_query().where("location", "=", None).get()) == ["dave", "frank"]


def test_count_applies_scope(accessor, users):
    assert accessor.new_query().count() == 4
    assert accessor.new_query().with_trashed().count() == 6
    assert accessor.new_query().only_trashed().count() == 2


def test_first_or_fail_respects_order(accessor, users):
    assert accessor.new_query().order_by("user_name", "DESC").first_or_fail().user_name == "frank"


def test_find_or_fail_raises_not_found(accessor, users):
    with pytest.raises(NotFoundError):
        accessor.new_query().find_or_fail(users["erin"].id)


def test_unknown_column_raises_invalid_request(accessor):
    with pytest.raises(InvalidRequestError):
        accessor.new_query().where("nope", "=", 1)
    with pytest.raises(InvalidRequestError):
        accessor.new_query().order_by("nope")


def test_empty_mapping_in_and_position_is_ignored(accessor, users):
    assert accessor.new_query().where({}).count() == 4


def test_destroy_with_no_ids_is_a_no_op(accessor, users):
    assert accessor.new_query().destroy([]) == 0


def test_destroy_does_not_count_already_trashed_rows(accessor, users):
    assert accessor.new_query().destroy([users["carol"].id, users["dave"].id]) == 1


def test_trashed_toggles_require_soft_deletes(session):
    query = EntityAccessor(session, ViewCount).new_query()
    with pytest.raises(ConfigurationError):
        query.with_trashed()
    with pytest.raises(ConfigurationError):
        query.only_trashed()


def test_normalize_operator_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_operator("===")


def test_empty_mapping_in_or_position_is_ignored(accessor, users):
    query = accessor.new_query().where("customer_name", "=", "Globex").or_where({})
    assert names(query.get()) == ["dave"]
