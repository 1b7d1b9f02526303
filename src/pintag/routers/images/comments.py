"""Threaded comments on images with per-user up/down votes."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload

from pintag.auth.dependencies import get_current_user, get_optional_user
from pintag.auth.models import User
from pintag.comments import (
    CommentTreeError,
    apply_vote,
    build_comment_tree,
    collect_subtree_ids,
    comment_score,
    normalize_comment_text,
)
from pintag.dependencies import get_db
from pintag.metadata import Comment, CommentVote
from pintag.routers._shared import resolve_image, serialize_user_ref

logger = logging.getLogger(__name__)

router = APIRouter()


class CommentCreateBody(BaseModel):
    comment_text: str
    parent_comment_id: Optional[int] = None


class CommentVoteBody(BaseModel):
    vote_type: str


def _user_votes(db: Session, user: Optional[User], comment_ids) -> dict:
    if user is None or not comment_ids:
        return {}
    rows = (
        db.query(CommentVote.comment_id, CommentVote.vote_type)
        .filter(CommentVote.user_id == user.id, CommentVote.comment_id.in_(list(comment_ids)))
        .all()
    )
    return {comment_id: vote_type for comment_id, vote_type in rows}


def _can_delete(comment: Comment, user: Optional[User]) -> bool:
    return user is not None and (user.is_admin or comment.comment_by_id == user.id)


def _serialize_comment(comment: Comment, user: Optional[User], user_vote: Optional[str], depth: Optional[int] = None) -> dict:
    return {
        "id": comment.id,
        "image_id": comment.image_id,
        "comment_text": comment.comment_text,
        "author": serialize_user_ref(comment.comment_by),
        "parent_comment_id": comment.parent_comment_id,
        "depth": comment.depth if depth is None else depth,
        "comment_upvotes": comment.comment_upvotes,
        "comment_downvotes": comment.comment_downvotes,
        "score": comment_score(comment),
        "user_vote": user_vote,
        "can_delete": _can_delete(comment, user),
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


def _serialize_node(node, user: Optional[User], votes: dict) -> dict:
    data = _serialize_comment(node.comment, user, votes.get(node.comment.id), depth=node.depth)
    data["children"] = [_serialize_node(child, user, votes) for child in node.children]
    return data


@router.get("/images/{image_ref}/comments", response_model=dict, operation_id="list_image_comments")
async def list_image_comments(
    image_ref: str,
    sort: Literal["newest", "oldest"] = Query("newest"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """List an image's comments as reply trees.

    Top-level threads follow ``sort``; replies are always oldest first.
    """
    image = resolve_image(db, image_ref)
    comments = (
        db.query(Comment)
        .options(joinedload(Comment.comment_by))
        .filter(Comment.image_id == image.id)
        .all()
    )
    roots = build_comment_tree(comments)
    if sort == "newest":
        roots.reverse()

    votes = _user_votes(db, current_user, [c.id for c in comments])
    return {
        "total": len(comments),
        "comments": [_serialize_node(node, current_user, votes) for node in roots],
    }


@router.post("/images/{image_ref}/comments", response_model=dict, status_code=201, operation_id="create_image_comment")
async def create_image_comment(
    image_ref: str,
    body: CommentCreateBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a comment or a reply to one."""
    image = resolve_image(db, image_ref)
    try:
        text = normalize_comment_text(body.comment_text)
    except CommentTreeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    depth = 0
    if body.parent_comment_id is not None:
        parent = db.query(Comment).filter(
            Comment.id == body.parent_comment_id,
            Comment.image_id == image.id,
        ).first()
        if not parent:
            raise HTTPException(status_code=400, detail="Parent comment not found")
        depth = (parent.depth or 0) + 1

    comment = Comment(
        image_id=image.id,
        comment_by_id=current_user.id,
        comment_text=text,
        parent_comment_id=body.parent_comment_id,
        depth=depth,
        comment_upvotes=0,
        comment_downvotes=0,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return _serialize_comment(comment, current_user, None)


@router.post("/comments/{comment_id}/vote", response_model=dict, operation_id="vote_comment")
async def vote_comment(
    comment_id: int,
    body: CommentVoteBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cast, switch or withdraw the caller's vote on a comment."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    existing = db.query(CommentVote).filter(
        CommentVote.comment_id == comment.id,
        CommentVote.user_id == current_user.id,
    ).first()
    previous = existing.vote_type if existing else None

    try:
        up, down, new_vote = apply_vote(
            comment.comment_upvotes, comment.comment_downvotes, previous, body.vote_type
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    comment.comment_upvotes = up
    comment.comment_downvotes = down
    if new_vote is None:
        db.delete(existing)
    elif existing is not None:
        existing.vote_type = new_vote
    else:
        db.add(CommentVote(comment_id=comment.id, user_id=current_user.id, vote_type=new_vote))
    db.commit()
    db.refresh(comment)
    logger.info("User %s vote on comment %s: %s -> %s", current_user.id, comment.id, previous, new_vote)
    return _serialize_comment(comment, current_user, new_vote)


@router.delete("/comments/{comment_id}", response_model=dict, operation_id="delete_comment")
async def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a comment and its replies (author or admin)."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if not _can_delete(comment, current_user):
        raise HTTPException(status_code=403, detail="Only the author or an admin can delete this comment")

    siblings = db.query(Comment.id, Comment.parent_comment_id).filter(Comment.image_id == comment.image_id).all()
    removed = collect_subtree_ids(siblings, comment.id)

    db.delete(comment)
    db.commit()
    return {"deleted": True, "id": comment_id, "removed_ids": sorted(removed)}
