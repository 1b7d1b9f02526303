"""
Initial schema: accounts, catalog, images, tags, comments and albums
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '202610190900_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _catalog_table(name):
    op.create_table(
        name,
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index(f'ix_{name}_name', name, ['name'], unique=True)


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('login_attempts', sa.Integer, nullable=False, server_default='0'),
        sa.Column('lock_until', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.Column('last_login_at', sa.DateTime, nullable=True),
        sa.CheckConstraint("role IN ('user', 'admin')", name='ck_users_role'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    for name in ('persons', 'locations', 'occasions'):
        _catalog_table(name)

    op.create_table(
        'images',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('media_id', sa.String(length=32), nullable=False),
        sa.Column('filename', sa.String(length=512), nullable=False),
        sa.Column('alt', sa.String(length=1024), nullable=True),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('filesize', sa.BigInteger, nullable=True),
        sa.Column('width', sa.Integer, nullable=True),
        sa.Column('height', sa.Integer, nullable=True),
        sa.Column('format', sa.String(length=50), nullable=True),
        sa.Column('storage_key', sa.String(length=1024), nullable=False),
        sa.Column('thumbnail_key', sa.String(length=1024), nullable=True),
        sa.Column('card_key', sa.String(length=1024), nullable=True),
        sa.Column('exif_data', postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), 'sqlite'), nullable=True),
        sa.Column('uploaded_by_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_user_upload', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_images_media_id', 'images', ['media_id'], unique=True)
    op.create_index('ix_images_uploaded_by_id', 'images', ['uploaded_by_id'])
    op.create_index('ix_images_is_user_upload', 'images', ['is_user_upload'])
    op.create_index('ix_images_created_at', 'images', ['created_at'])

    op.create_table(
        'image_tags',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('image_id', sa.Integer, sa.ForeignKey('images.id', ondelete='CASCADE'), nullable=False),
        sa.Column('when_type', sa.String(length=20), nullable=False, server_default=''),
        sa.Column('when_value', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('when_value_confidence', sa.Integer, nullable=False, server_default='3'),
        sa.Column('location_id', sa.Integer, sa.ForeignKey('locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('location_confidence', sa.Integer, nullable=False, server_default='3'),
        sa.Column('occasion_id', sa.Integer, sa.ForeignKey('occasions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('occasion_confidence', sa.Integer, nullable=False, server_default='3'),
        sa.Column('context', sa.Text, nullable=False, server_default=''),
        sa.Column('remarks', sa.Text, nullable=False, server_default=''),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='Tagged'),
        sa.Column('created_by_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.CheckConstraint("status IN ('Not Verified', 'Tagged', 'Verified')", name='ck_image_tags_status'),
        sa.CheckConstraint('when_value_confidence BETWEEN 1 AND 5', name='ck_image_tags_when_confidence'),
        sa.CheckConstraint('location_confidence BETWEEN 1 AND 5', name='ck_image_tags_location_confidence'),
        sa.CheckConstraint('occasion_confidence BETWEEN 1 AND 5', name='ck_image_tags_occasion_confidence'),
    )
    op.create_index('ix_image_tags_image_id', 'image_tags', ['image_id'])
    op.create_index('ix_image_tags_location_id', 'image_tags', ['location_id'])
    op.create_index('ix_image_tags_occasion_id', 'image_tags', ['occasion_id'])
    op.create_index('ix_image_tags_status', 'image_tags', ['status'])
    op.create_index('ix_image_tags_created_by_id', 'image_tags', ['created_by_id'])
    op.create_index('ix_image_tags_created_at', 'image_tags', ['created_at'])
    op.create_index('idx_image_tags_image_status', 'image_tags', ['image_id', 'status'])

    op.create_table(
        'person_tags',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('image_tag_id', sa.Integer, sa.ForeignKey('image_tags.id', ondelete='CASCADE'), nullable=False),
        sa.Column('person_id', sa.Integer, sa.ForeignKey('persons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('confidence', sa.Integer, nullable=False, server_default='3'),
        sa.Column('x', sa.Float, nullable=False, server_default='50'),
        sa.Column('y', sa.Float, nullable=False, server_default='50'),
        sa.Column('created_by_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.CheckConstraint('x >= 0 AND x <= 100', name='ck_person_tags_x'),
        sa.CheckConstraint('y >= 0 AND y <= 100', name='ck_person_tags_y'),
        sa.CheckConstraint('confidence BETWEEN 1 AND 5', name='ck_person_tags_confidence'),
    )
    op.create_index('ix_person_tags_image_tag_id', 'person_tags', ['image_tag_id'])
    op.create_index('ix_person_tags_person_id', 'person_tags', ['person_id'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('image_id', sa.Integer, sa.ForeignKey('images.id', ondelete='CASCADE'), nullable=False),
        sa.Column('comment_by_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('comment_text', sa.String(length=500), nullable=False),
        sa.Column('parent_comment_id', sa.Integer, sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=True),
        sa.Column('depth', sa.Integer, nullable=False, server_default='0'),
        sa.Column('comment_upvotes', sa.Integer, nullable=False, server_default='0'),
        sa.Column('comment_downvotes', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('comment_upvotes >= 0', name='ck_comments_upvotes'),
        sa.CheckConstraint('comment_downvotes >= 0', name='ck_comments_downvotes'),
    )
    op.create_index('ix_comments_image_id', 'comments', ['image_id'])
    op.create_index('ix_comments_comment_by_id', 'comments', ['comment_by_id'])
    op.create_index('ix_comments_parent_comment_id', 'comments', ['parent_comment_id'])
    op.create_index('ix_comments_created_at', 'comments', ['created_at'])

    op.create_table(
        'comment_votes',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('comment_id', sa.Integer, sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('vote_type', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_votes_comment_user'),
        sa.CheckConstraint("vote_type IN ('upvote', 'downvote')", name='ck_comment_votes_type'),
    )
    op.create_index('ix_comment_votes_comment_id', 'comment_votes', ['comment_id'])
    op.create_index('ix_comment_votes_user_id', 'comment_votes', ['user_id'])

    op.create_table(
        'albums',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('short_description', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_albums_slug', 'albums', ['slug'], unique=True)

    op.create_table(
        'album_images',
        sa.Column('album_id', sa.Integer, sa.ForeignKey('albums.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('image_id', sa.Integer, sa.ForeignKey('images.id', ondelete='CASCADE'), primary_key=True),
    )


def downgrade():
    op.drop_table('album_images')
    op.drop_index('ix_albums_slug', table_name='albums')
    op.drop_table('albums')
    op.drop_table('comment_votes')
    op.drop_table('comments')
    op.drop_table('person_tags')
    op.drop_table('image_tags')
    op.drop_table('images')
    for name in ('occasions', 'locations', 'persons'):
        op.drop_index(f'ix_{name}_name', table_name=name)
        op.drop_table(name)
    op.drop_table('users')
