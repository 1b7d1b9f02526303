"""Tests for comment threading and vote tallying."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from pintag.comments import (
    CommentTreeError,
    apply_vote,
    build_comment_tree,
    collect_subtree_ids,
    comment_score,
    flatten_comment_tree,
    normalize_comment_text,
)

BASE = datetime(2024, 5, 1, 12, 0, 0)


def _comment(id, parent=None, minutes=0):
    return SimpleNamespace(
        id=id,
        parent_comment_id=parent,
        created_at=BASE + timedelta(minutes=minutes),
    )


class TestBuildCommentTree:

    def test_nests_replies_under_parents(self):
        comments = [
            _comment(1, minutes=0),
            _comment(2, parent=1, minutes=1),
            _comment(3, parent=2, minutes=2),
            _comment(4, minutes=3),
        ]
        roots = build_comment_tree(comments)

        assert [n.comment.id for n in roots] == [1, 4]
        assert [n.comment.id for n in roots[0].children] == [2]
        assert [n.comment.id for n in roots[0].children[0].children] == [3]

    def test_siblings_sorted_oldest_first_regardless_of_input_order(self):
        comments = [
            _comment(5, parent=1, minutes=9),
            _comment(1, minutes=0),
            _comment(3, parent=1, minutes=2),
            _comment(2, minutes=5),
        ]
        roots = build_comment_tree(comments)

        assert [n.comment.id for n in roots] == [1, 2]
        assert [n.comment.id for n in roots[0].children] == [3, 5]

    def test_orphan_becomes_root(self):
        comments = [_comment(10, parent=999, minutes=1), _comment(11, minutes=0)]
        roots = build_comment_tree(comments)

        assert [n.comment.id for n in roots] == [11, 10]
        assert all(n.depth == 0 for n in roots)

    def test_depth_follows_tree_position(self):
        comments = [
            _comment(1),
            _comment(2, parent=1, minutes=1),
            _comment(3, parent=2, minutes=2),
        ]
        flat = list(flatten_comment_tree(build_comment_tree(comments)))

        assert [(c.id, depth) for c, depth in flat] == [(1, 0), (2, 1), (3, 2)]

    def test_flatten_is_preorder(self):
        comments = [
            _comment(1, minutes=0),
            _comment(2, parent=1, minutes=1),
            _comment(3, minutes=2),
            _comment(4, parent=1, minutes=3),
        ]
        flat = [c.id for c, _ in flatten_comment_tree(build_comment_tree(comments))]
        assert flat == [1, 2, 4, 3]

    def test_empty_input(self):
        assert build_comment_tree([]) == []


def test_collect_subtree_ids():
    comments = [
        _comment(1),
        _comment(2, parent=1),
        _comment(3, parent=2),
        _comment(4),
        _comment(5, parent=4),
    ]
    assert collect_subtree_ids(comments, 1) == {1, 2, 3}
    assert collect_subtree_ids(comments, 4) == {4, 5}
    assert collect_subtree_ids(comments, 3) == {3}


class TestApplyVote:

    def test_first_upvote(self):
        assert apply_vote(0, 0, None, "upvote") == (1, 0, "upvote")

    def test_first_downvote(self):
        assert apply_vote(2, 1, None, "downvote") == (2, 2, "downvote")

    def test_repeat_vote_withdraws(self):
        assert apply_vote(3, 0, "upvote", "upvote") == (2, 0, None)
        assert apply_vote(0, 1, "downvote", "downvote") == (0, 0, None)

    def test_opposite_vote_switches(self):
        assert apply_vote(1, 0, "upvote", "downvote") == (0, 1, "downvote")
        assert apply_vote(4, 2, "downvote", "upvote") == (5, 1, "upvote")

    def test_counts_never_negative(self):
        assert apply_vote(0, 0, "upvote", "upvote") == (0, 0, None)
        assert apply_vote(0, 0, "downvote", "upvote") == (1, 0, "upvote")

    def test_none_counts_treated_as_zero(self):
        assert apply_vote(None, None, None, "upvote") == (1, 0, "upvote")

    @pytest.mark.parametrize("vote", ["", "like", "UPVOTE", None])
    def test_invalid_vote_type(self, vote):
        with pytest.raises(ValueError):
            apply_vote(0, 0, None, vote)


def test_comment_score():
    comment = SimpleNamespace(comment_upvotes=5, comment_downvotes=2)
    assert comment_score(comment) == 3


class TestNormalizeCommentText:

    def test_strips_whitespace(self):
        assert normalize_comment_text("  nice shot  ") == "nice shot"

    def test_rejects_empty(self):
        with pytest.raises(CommentTreeError):
            normalize_comment_text("   ")

    def test_rejects_too_long(self):
        with pytest.raises(CommentTreeError):
            normalize_comment_text("x" * 501)

    def test_accepts_exactly_500(self):
        assert len(normalize_comment_text("x" * 500)) == 500
