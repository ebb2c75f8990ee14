"""
Tests for BugRepository (collection access against a real SQLite session).
"""
import re
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from bugtracker.exceptions import (
    BugNotFoundError, InvalidIdentifierError, StoreError,
)
from bugtracker.models.db_models import Bug, BugComment, generate_bug_id
from bugtracker.models.schemas import BugCreate, BugUpdate
from bugtracker.services.bug_repository import parse_bug_id
from bugtracker.services.query_builder import BugListQuery, build_query_plan


def _plan(**params):
    return build_query_plan(BugListQuery.model_validate(params))


# ============================================================================
# Identifiers
# ============================================================================

class TestParseBugId:
    """Tests for parse_bug_id()."""

    def test_canonical_id(self):
        bug_id = generate_bug_id()
        assert parse_bug_id(bug_id) == bug_id

    def test_uppercase_is_canonicalized(self):
        bug_id = generate_bug_id()
        assert parse_bug_id(bug_id.upper()) == bug_id

    @pytest.mark.parametrize("bug_id", ["", "123", "not-a-valid-id", "g" * 32, "a" * 33, None])
    def test_malformed(self, bug_id):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            parse_bug_id(bug_id)
        assert exc_info.value.message == "Invalid bug ID format"


# ============================================================================
# Create / get
# ============================================================================

class TestCreateAndGet:
    """Tests for create() and get_by_id()."""

    def test_create_assigns_id_and_defaults(self, repo):
        bug = repo.create(BugCreate.model_validate({"title": "T", "description": "D", "reporter": "R"}))
        assert re.fullmatch(r"[0-9a-f]{32}", bug.id)
        assert (bug.status, bug.priority, bug.severity) == ("open", "medium", "medium")
        assert bug.tags == []
        assert bug.attachments == []
        assert bug.comments == []
        assert bug.created_at == bug.updated_at

    def test_create_stores_requested_values(self, repo):
        bug = repo.create(BugCreate.model_validate({
            "title": "T", "description": "D", "reporter": "R",
            "status": "in-progress", "priority": "critical", "severity": "low",
            "assignedTo": "bob", "environment": "staging",
        }))
        assert (bug.status, bug.priority, bug.severity) == ("in-progress", "critical", "low")
        assert bug.assigned_to == "bob"
        assert bug.environment == "staging"

    def test_create_dedupes_tags(self, repo):
        bug = repo.create(BugCreate.model_validate({
            "title": "T", "description": "D", "reporter": "R", "tags": ["a", "a", "b", "a"],
        }))
        assert bug.tags == ["a", "b"]

    def test_long_names_stored_whole(self, repo, test_db):
        bug = repo.create(BugCreate.model_validate({
            "title": "T", "description": "D", "reporter": "r" * 300, "assignedTo": "b" * 300,
        }))
        repo.append_comment(bug.id, "a" * 300, "C")

        test_db.expire_all()
        stored = test_db.get(Bug, bug.id)
        assert stored.reporter == "r" * 300
        assert stored.assigned_to == "b" * 300
        assert stored.comments[0].author == "a" * 300

    def test_get_by_id(self, repo, sample_bug):
        assert repo.get_by_id(sample_bug.id).title == "Login button unresponsive"
        assert repo.get_by_id(sample_bug.id.upper()).id == sample_bug.id

    def test_get_missing(self, repo):
        with pytest.raises(BugNotFoundError):
            repo.get_by_id(generate_bug_id())

    def test_get_malformed(self, repo):
        with pytest.raises(InvalidIdentifierError):
            repo.get_by_id("123")


# ============================================================================
# Listing
# ============================================================================

class TestListBugs:
    """Tests for list_bugs()."""

    def test_empty(self, repo):
        assert repo.list_bugs(_plan()) == ([], 0)

    def test_pagination(self, repo, make_bug):
        for _ in range(15):
            make_bug()

        seen = []
        for page in ("1", "2", "3"):
            bugs, total = repo.list_bugs(_plan(page=page, limit="5"))
            assert total == 15
            assert len(bugs) == 5
            seen.extend(bug.id for bug in bugs)
        assert len(set(seen)) == 15

        bugs, total = repo.list_bugs(_plan(page="4", limit="5"))
        assert bugs == []
        assert total == 15

    def test_default_sort_newest_first(self, repo, make_bug):
        make_bug(title="old", days_old=3)
        make_bug(title="new", days_old=1)
        make_bug(title="middle", days_old=2)

        bugs, _ = repo.list_bugs(_plan())
        assert [bug.title for bug in bugs] == ["new", "middle", "old"]
        created = [bug.created_at for bug in bugs]
        assert created == sorted(created, reverse=True)

    def test_ascending_sort(self, repo, make_bug):
        for title in ("banana", "apple", "cherry"):
            make_bug(title=title)

        bugs, _ = repo.list_bugs(_plan(sort="title"))
        assert [bug.title for bug in bugs] == ["apple", "banana", "cherry"]

        bugs, _ = repo.list_bugs(_plan(sort="-title"))
        assert [bug.title for bug in bugs] == ["cherry", "banana", "apple"]

    def test_ties_ordered_by_id(self, repo, make_bug, test_db):
        for _ in range(4):
            make_bug(priority="high")

        bugs, _ = repo.list_bugs(_plan(sort="priority"))
        assert [bug.id for bug in bugs] == sorted(bug.id for bug in bugs)

    def test_equality_filters(self, repo, make_bug):
        target = make_bug(status="open", priority="high", severity="low")
        make_bug(status="open", priority="low", severity="low")
        make_bug(status="closed", priority="high", severity="low")

        bugs, total = repo.list_bugs(_plan(status="open", priority="high", severity="low"))
        assert total == 1
        assert [bug.id for bug in bugs] == [target.id]

    def test_search_title_and_description(self, repo, make_bug):
        in_title = make_bug(title="Crash on save", description="Editor closes")
        in_description = make_bug(title="Editor problem", description="Application CRASHES on load")
        make_bug(title="Typo", description="Wrong label")

        bugs, total = repo.list_bugs(_plan(search="crash"))
        assert total == 2
        assert {bug.id for bug in bugs} == {in_title.id, in_description.id}

    def test_search_any_term_matches(self, repo, make_bug):
        first = make_bug(title="Crash on save")
        second = make_bug(title="Typo in footer")
        make_bug(title="Slow page")

        bugs, _ = repo.list_bugs(_plan(search="crash typo"))
        assert {bug.id for bug in bugs} == {first.id, second.id}

    def test_search_is_literal(self, repo, make_bug):
        literal = make_bug(title="CPU at 100% after login")
        make_bug(title="CPU at 1000 after login")

        bugs, _ = repo.list_bugs(_plan(search="100%"))
        assert [bug.id for bug in bugs] == [literal.id]

        bugs, _ = repo.list_bugs(_plan(search="_"))
        assert bugs == []

    def test_search_combined_with_filter(self, repo, make_bug):
        make_bug(title="Crash on save", status="closed")
        target = make_bug(title="Crash on load", status="open")

        bugs, total = repo.list_bugs(_plan(search="crash", status="open"))
        assert total == 1
        assert bugs[0].id == target.id

    def test_repeated_reads_identical(self, repo, make_bug):
        for priority in ("low", "high", "high", "medium"):
            make_bug(priority=priority)

        plan = _plan(sort="priority", limit="3")
        first = [bug.id for bug in repo.list_bugs(plan)[0]]
        second = [bug.id for bug in repo.list_bugs(plan)[0]]
        assert first == second


class TestByStatus:
    """Tests for by_status()."""

    def test_returns_only_matching(self, repo, make_bug):
        older = make_bug(status="resolved", days_old=2)
        newer = make_bug(status="resolved", days_old=1)
        make_bug(status="open")

        assert [bug.id for bug in repo.by_status("resolved")] == [older.id, newer.id]
        assert repo.by_status("closed") == []


# ============================================================================
# Update / delete
# ============================================================================

class TestUpdate:
    """Tests for update()."""

    def test_partial_update(self, repo, sample_bug):
        before = sample_bug.updated_at
        bug = repo.update(sample_bug.id, BugUpdate.model_validate({"priority": "low", "title": "  Renamed  "}))

        assert bug.priority == "low"
        assert bug.title == "Renamed"
        assert bug.severity == "critical"
        assert bug.assigned_to == "bob"
        assert bug.updated_at > before

    def test_tags_replaced_and_deduped(self, repo, sample_bug):
        bug = repo.update(sample_bug.id, BugUpdate.model_validate({"tags": ["x", "y", "x"]}))
        assert bug.tags == ["x", "y"]

    def test_null_tags_become_empty(self, repo, sample_bug):
        assert repo.update(sample_bug.id, BugUpdate.model_validate({"tags": None})).tags == []

    def test_missing(self, repo):
        with pytest.raises(BugNotFoundError):
            repo.update(generate_bug_id(), BugUpdate.model_validate({"priority": "low"}))

    def test_malformed_id(self, repo):
        with pytest.raises(InvalidIdentifierError):
            repo.update("123", BugUpdate.model_validate({"priority": "low"}))


class TestDelete:
    """Tests for delete()."""

    def test_delete_then_get_and_delete_again(self, repo, sample_bug):
        bug_id = sample_bug.id
        repo.delete(bug_id)

        with pytest.raises(BugNotFoundError):
            repo.get_by_id(bug_id)
        with pytest.raises(BugNotFoundError):
            repo.delete(bug_id)

    def test_delete_removes_comments(self, repo, sample_bug, test_db):
        repo.append_comment(sample_bug.id, "A", "C")
        repo.delete(sample_bug.id)
        assert test_db.query(BugComment).count() == 0


# ============================================================================
# Comments / status transitions
# ============================================================================

class TestAppendComment:
    """Tests for append_comment()."""

    def test_appends_and_touches(self, repo, sample_bug):
        before = sample_bug.updated_at
        bug = repo.append_comment(sample_bug.id, "A", "C")

        assert len(bug.comments) == 1
        assert (bug.comments[0].author, bug.comments[0].content) == ("A", "C")
        assert bug.comments[0].created_at is not None
        assert bug.updated_at > before

    def test_comments_keep_insertion_order(self, repo, sample_bug):
        for n in range(3):
            repo.append_comment(sample_bug.id, "A", f"comment {n}")
        bug = repo.get_by_id(sample_bug.id)
        assert [c.content for c in bug.comments] == ["comment 0", "comment 1", "comment 2"]

    def test_missing_bug(self, repo):
        with pytest.raises(BugNotFoundError):
            repo.append_comment(generate_bug_id(), "A", "C")

    def test_updated_at_strictly_increases(self, repo, sample_bug, test_db):
        future = sample_bug.updated_at + timedelta(days=1)
        sample_bug.updated_at = future
        test_db.commit()

        bug = repo.append_comment(sample_bug.id, "A", "C")
        assert bug.updated_at > future


class TestTransitionStatus:
    """Tests for transition_status()."""

    def test_transition(self, repo, sample_bug):
        before = sample_bug.updated_at
        bug = repo.transition_status(sample_bug.id, "resolved")
        assert bug.status == "resolved"
        assert bug.updated_at > before

    def test_any_transition_allowed(self, repo, make_bug):
        bug = make_bug(status="closed")
        assert repo.transition_status(bug.id, "open").status == "open"


# ============================================================================
# Store failures
# ============================================================================

def test_commit_failure_raises_store_error(repo, sample_bug, test_db):
    with patch.object(test_db, "commit", side_effect=OperationalError("UPDATE", {}, Exception("disk full"))):
        with pytest.raises(StoreError):
            repo.transition_status(sample_bug.id, "closed")
