"""Create users, gifts, points ledger, redemptions and ratings."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


point_transaction_type = sa.Enum("credit", "debit", name="point_transaction_type")
redemption_status = sa.Enum("pending", "completed", name="redemption_status")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"])

    op.create_table(
        "gifts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("points_required", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("avg_rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stock >= 0", name=op.f("ck_gifts_stock_non_negative")),
        sa.CheckConstraint("points_required >= 0", name=op.f("ck_gifts_points_required_non_negative")),
        sa.CheckConstraint("total_reviews >= 0", name=op.f("ck_gifts_total_reviews_non_negative")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_gifts")),
    )

    op.create_table(
        "point_balance",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("transaction_type", point_transaction_type, nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("reference_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance_after >= 0", name=op.f("ck_point_balance_balance_after_non_negative")),
        sa.CheckConstraint("amount <> 0", name=op.f("ck_point_balance_amount_non_zero")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_point_balance_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_point_balance")),
        sa.UniqueConstraint("user_id", "sequence", name="uq_point_balance_user_sequence"),
    )
    op.create_index("ix_point_balance_user_created_at", "point_balance", ["user_id", "created_at"])
    op.create_index(op.f("ix_point_balance_reference_id"), "point_balance", ["reference_id"])

    op.create_table(
        "redemptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("gift_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("status", redemption_status, nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity >= 1", name=op.f("ck_redemptions_quantity_positive")),
        sa.CheckConstraint("points_spent >= 0", name=op.f("ck_redemptions_points_spent_non_negative")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_redemptions_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["gift_id"],
            ["gifts.id"],
            name=op.f("fk_redemptions_gift_id_gifts"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_redemptions")),
    )
    op.create_index(op.f("ix_redemptions_user_id"), "redemptions", ["user_id"])
    op.create_index(op.f("ix_redemptions_gift_id"), "redemptions", ["gift_id"])
    op.create_index(op.f("ix_redemptions_batch_id"), "redemptions", ["batch_id"])

    op.create_table(
        "ratings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("gift_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("redemption_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("stars", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stars BETWEEN 1 AND 5", name=op.f("ck_ratings_stars_range")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_ratings_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["gift_id"],
            ["gifts.id"],
            name=op.f("fk_ratings_gift_id_gifts"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["redemption_id"],
            ["redemptions.id"],
            name=op.f("fk_ratings_redemption_id_redemptions"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ratings")),
        sa.UniqueConstraint("redemption_id", name=op.f("uq_ratings_redemption_id")),
    )
    op.create_index(op.f("ix_ratings_user_id"), "ratings", ["user_id"])
    op.create_index(op.f("ix_ratings_gift_id"), "ratings", ["gift_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_ratings_gift_id"), table_name="ratings")
    op.drop_index(op.f("ix_ratings_user_id"), table_name="ratings")
    op.drop_table("ratings")

    op.drop_index(op.f("ix_redemptions_batch_id"), table_name="redemptions")
    op.drop_index(op.f("ix_redemptions_gift_id"), table_name="redemptions")
    op.drop_index(op.f("ix_redemptions_user_id"), table_name="redemptions")
    op.drop_table("redemptions")

    op.drop_index(op.f("ix_point_balance_reference_id"), table_name="point_balance")
    op.drop_index("ix_point_balance_user_created_at", table_name="point_balance")
    op.drop_table("point_balance")

    op.drop_table("gifts")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    redemption_status.drop(op.get_bind(), checkfirst=True)
    point_transaction_type.drop(op.get_bind(), checkfirst=True)
