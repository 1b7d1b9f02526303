"""Comment threading and vote tallying helpers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from pintag.metadata import VOTE_TYPES

MAX_COMMENT_LENGTH = 500


class CommentTreeError(ValueError):
    """Invalid comment input (empty text, bad parent, ...)."""


@dataclass
class CommentNode:
    """A comment positioned in the reply tree."""

    comment: Any
    depth: int = 0
    children: List["CommentNode"] = field(default_factory=list)


def _created_at(comment) -> datetime:
    return comment.created_at or datetime.min


def build_comment_tree(comments: Iterable[Any]) -> List[CommentNode]:
    """Link flat comments into reply trees.

    Comments whose parent is not part of ``comments`` are promoted to roots,
    so a partial page still renders. Siblings are ordered oldest first at
    every level, and ``depth`` is derived from tree position.
    """
    nodes = {}
    ordered = []
    for comment in comments:
        node = CommentNode(comment=comment)
        nodes[comment.id] = node
        ordered.append(node)

    roots: List[CommentNode] = []
    for node in ordered:
        parent_id = node.comment.parent_comment_id
        parent = nodes.get(parent_id) if parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)

    def _sort_and_depth(level: List[CommentNode], depth: int) -> None:
        level.sort(key=lambda n: (_created_at(n.comment), n.comment.id))
        for node in level:
            node.depth = depth
            _sort_and_depth(node.children, depth + 1)

    _sort_and_depth(roots, 0)
    return roots


def flatten_comment_tree(roots: List[CommentNode]) -> Iterator[Tuple[Any, int]]:
    """Walk a comment tree pre-order, yielding (comment, depth)."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node.comment, node.depth
        stack.extend(reversed(node.children))


def collect_subtree_ids(comments: Iterable[Any], root_id: int) -> set:
    """Return the ids of ``root_id`` and all of its descendants."""
    children_by_parent = {}
    for comment in comments:
        children_by_parent.setdefault(comment.parent_comment_id, []).append(comment.id)

    collected = set()
    pending = [root_id]
    while pending:
        current = pending.pop()
        if current in collected:
            continue
        collected.add(current)
        pending.extend(children_by_parent.get(current, []))
    return collected


def normalize_comment_text(text: Optional[str]) -> str:
    value = (text or "").strip()
    if not value:
        raise CommentTreeError("comment_text cannot be empty.")
    if len(value) > MAX_COMMENT_LENGTH:
        raise CommentTreeError(f"comment_text cannot exceed {MAX_COMMENT_LENGTH} characters.")
    return value


def apply_vote(
    upvotes: int,
    downvotes: int,
    previous: Optional[str],
    requested: str,
) -> Tuple[int, int, Optional[str]]:
    """Apply one user's vote request to running tallies.

    Repeating the current vote withdraws it; voting the other way moves the
    vote across. Returns ``(upvotes, downvotes, new_vote)`` where
    ``new_vote`` is None when the user no longer has a vote.
    """
    if requested not in VOTE_TYPES:
        raise ValueError(f"Invalid vote type: {requested!r}")
    if previous is not None and previous not in VOTE_TYPES:
        raise ValueError(f"Invalid previous vote: {previous!r}")

    up = int(upvotes or 0)
    down = int(downvotes or 0)

    if previous == "upvote":
        up -= 1
    elif previous == "downvote":
        down -= 1

    if previous == requested:
        new_vote = None
    else:
        new_vote = requested
        if requested == "upvote":
            up += 1
        else:
            down += 1

    return max(up, 0), max(down, 0), new_vote


def comment_score(comment) -> int:
    return int(comment.comment_upvotes or 0) - int(comment.comment_downvotes or 0)
