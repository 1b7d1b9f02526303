"""Metadata storage: catalog entries, images, tags, comments and albums."""

from datetime import datetime

from sqlalchemy import Column, String, Integer, BigInteger, Boolean, Float, DateTime, Text, ForeignKey, Index, Table, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import declarative_base, relationship

@compiles(JSONB, "sqlite")
def compile_jsonb_for_sqlite(element, compiler, **kw):
    return compiler.visit_JSON(element, **kw)


Base = declarative_base()

TAG_STATUSES = ("Not Verified", "Tagged", "Verified")
WHEN_TYPES = ("", "full_date", "decades", "year", "month_year")
VOTE_TYPES = ("upvote", "downvote")


class Person(Base):
    """Known people that can be pinned on images."""

    __tablename__ = "persons"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Location(Base):
    """Places where pictures were taken."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Occasion(Base):
    """Events or occasions a picture belongs to."""

    __tablename__ = "occasions"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


album_images = Table(
    "album_images",
    Base.metadata,
    Column("album_id", Integer, ForeignKey("albums.id", ondelete="CASCADE"), primary_key=True),
    Column("image_id", Integer, ForeignKey("images.id", ondelete="CASCADE"), primary_key=True),
)


class Image(Base):
    """An uploaded picture with its stored original and derivatives.

    Catalog images are uploaded by admins; user uploads carry the uploader
    and ``is_user_upload``. Both are taggable and commentable.
    """

    __tablename__ = "images"

    id = Column(Integer, primary_key=True)
    media_id = Column(String(32), nullable=False, unique=True, index=True)  # Public short id
    filename = Column(String(512), nullable=False)
    alt = Column(String(1024))
    mime_type = Column(String(100))
    filesize = Column(BigInteger)
    width = Column(Integer)
    height = Column(Integer)
    format = Column(String(50))

    # Object keys in the configured storage backend
    storage_key = Column(String(1024), nullable=False)
    thumbnail_key = Column(String(1024))
    card_key = Column(String(1024))

    exif_data = Column(JSONB)

    uploaded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    is_user_upload = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    uploaded_by = relationship("User")
    tags = relationship("ImageTag", back_populates="image", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="image", cascade="all, delete-orphan")
    albums = relationship("Album", secondary=album_images, back_populates="images")


class ImageTag(Base):
    """One user's tagging submission for an image.

    Carries who/where/when/what metadata with per-field confidence (1-5) and
    a review status. Admins move tags to ``Verified``.
    """

    __tablename__ = "image_tags"

    id = Column(Integer, primary_key=True)
    image_id = Column(Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=False, index=True)

    when_type = Column(String(20), nullable=False, default="")
    when_value = Column(String(50), nullable=False, default="")
    when_value_confidence = Column(Integer, nullable=False, default=3)

    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    location_confidence = Column(Integer, nullable=False, default=3)

    occasion_id = Column(Integer, ForeignKey("occasions.id", ondelete="SET NULL"), nullable=True, index=True)
    occasion_confidence = Column(Integer, nullable=False, default=3)

    context = Column(Text, nullable=False, default="")
    remarks = Column(Text, nullable=False, default="")

    status = Column(String(20), nullable=False, default="Tagged", index=True)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    image = relationship("Image", back_populates="tags")
    location = relationship("Location")
    occasion = relationship("Occasion")
    created_by = relationship("User")
    person_tags = relationship(
        "PersonTag",
        back_populates="image_tag",
        cascade="all, delete-orphan",
        order_by="PersonTag.id",
    )

    __table_args__ = (
        CheckConstraint("status IN ('Not Verified', 'Tagged', 'Verified')", name="ck_image_tags_status"),
        CheckConstraint("when_value_confidence BETWEEN 1 AND 5", name="ck_image_tags_when_confidence"),
        CheckConstraint("location_confidence BETWEEN 1 AND 5", name="ck_image_tags_location_confidence"),
        CheckConstraint("occasion_confidence BETWEEN 1 AND 5", name="ck_image_tags_occasion_confidence"),
        Index("idx_image_tags_image_status", "image_id", "status"),
    )


class PersonTag(Base):
    """A pin placing a person on an image, in percent coordinates (0-100)."""

    __tablename__ = "person_tags"

    id = Column(Integer, primary_key=True)
    image_tag_id = Column(Integer, ForeignKey("image_tags.id", ondelete="CASCADE"), nullable=False, index=True)
    person_id = Column(Integer, ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True)
    confidence = Column(Integer, nullable=False, default=3)
    x = Column(Float, nullable=False, default=50.0)
    y = Column(Float, nullable=False, default=50.0)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    image_tag = relationship("ImageTag", back_populates="person_tags")
    person = relationship("Person")

    __table_args__ = (
        CheckConstraint("x >= 0 AND x <= 100", name="ck_person_tags_x"),
        CheckConstraint("y >= 0 AND y <= 100", name="ck_person_tags_y"),
        CheckConstraint("confidence BETWEEN 1 AND 5", name="ck_person_tags_confidence"),
    )


class Comment(Base):
    """Threaded comment on an image with running vote tallies."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    image_id = Column(Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=False, index=True)
    comment_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    comment_text = Column(String(500), nullable=False)
    parent_comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    depth = Column(Integer, nullable=False, default=0)
    comment_upvotes = Column(Integer, nullable=False, default=0)
    comment_downvotes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    image = relationship("Image", back_populates="comments")
    comment_by = relationship("User")
    parent = relationship("Comment", remote_side=[id], back_populates="replies")
    replies = relationship("Comment", back_populates="parent", cascade="all, delete-orphan")
    votes = relationship("CommentVote", back_populates="comment", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("comment_upvotes >= 0", name="ck_comments_upvotes"),
        CheckConstraint("comment_downvotes >= 0", name="ck_comments_downvotes"),
    )


class CommentVote(Base):
    """A single user's current vote on a comment."""

    __tablename__ = "comment_votes"

    id = Column(Integer, primary_key=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    comment = relationship("Comment", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_votes_comment_user"),
        CheckConstraint("vote_type IN ('upvote', 'downvote')", name="ck_comment_votes_type"),
    )


class Album(Base):
    """Named, slugged collection of images."""

    __tablename__ = "albums"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    short_description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    images = relationship("Image", secondary=album_images, back_populates="albums", order_by="Image.id")
