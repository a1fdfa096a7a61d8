"""Initial schema: accounts, profiles, recipes, likes, comments, social routines.

Revision ID: 5e2f0c1a9b7d
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

from recipebox.db.routines import DROP_DDL, ROUTINE_DDL

revision = "5e2f0c1a9b7d"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("ingredients", sa.Text, nullable=False),
        sa.Column("instructions", sa.Text, nullable=False),
        sa.Column("cooking_time", sa.Integer, nullable=True),
        sa.Column("difficulty", sa.String(10), nullable=True),
        sa.Column("category", sa.String(50), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_recipes_created", "recipes", ["created_at"])
    op.create_table(
        "recipe_likes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.UniqueConstraint("recipe_id", "user_id", name="uq_recipe_user_like"),
    )
    op.create_table(
        "recipe_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.CheckConstraint("length(content) BETWEEN 1 AND 1000", name="ck_comment_content_length"),
    )
    op.create_index("ix_comments_recipe_created", "recipe_comments", ["recipe_id", "created_at"])
    op.create_table(
        "comment_likes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("comment_id", sa.String(36), sa.ForeignKey("recipe_comments.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.UniqueConstraint("comment_id", "user_id", name="uq_comment_user_like"),
    )

    if op.get_bind().dialect.name == "postgresql":
        for ddl in ROUTINE_DDL:
            op.execute(ddl)


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        for ddl in DROP_DDL:
            op.execute(ddl)
    op.drop_table("comment_likes")
    op.drop_index("ix_comments_recipe_created", table_name="recipe_comments")
    op.drop_table("recipe_comments")
    op.drop_table("recipe_likes")
    op.drop_index("ix_recipes_created", table_name="recipes")
    op.drop_table("recipes")
    op.drop_table("profiles")
    op.drop_table("users")
