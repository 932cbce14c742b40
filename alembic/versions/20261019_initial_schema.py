from alembic import op
import sqlalchemy as sa


revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.String(length=255), nullable=True),
        sa.Column("about", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "wishes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("link", sa.String(length=1024), nullable=True),
        sa.Column("image", sa.String(length=1024), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=2048), nullable=True),
        sa.Column("copied_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("price > 0", name="ck_wishes_price_positive"),
        sa.CheckConstraint("copied_count >= 0", name="ck_wishes_copied_count_non_negative"),
    )
    op.create_index("ix_wishes_owner_id", "wishes", ["owner_id"])

    op.create_table(
        "offers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wish_id", sa.Integer(), sa.ForeignKey("wishes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_offers_amount_positive"),
        sa.CheckConstraint("status IN ('active', 'cancelled', 'completed')", name="ck_offers_status_known"),
    )
    op.create_index("ix_offers_wish_id", "offers", ["wish_id"])
    op.create_index("ix_offers_user_id", "offers", ["user_id"])

    op.create_table(
        "wishlists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("image", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_wishlists_owner_id", "wishlists", ["owner_id"])
    op.create_index("ix_wishlists_name", "wishlists", ["name"])

    op.create_table(
        "wishlist_items",
        sa.Column("wishlist_id", sa.Integer(), sa.ForeignKey("wishlists.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("wish_id", sa.Integer(), sa.ForeignKey("wishes.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("ix_wishlist_items_wish_id", "wishlist_items", ["wish_id"])


def downgrade() -> None:
    op.drop_index("ix_wishlist_items_wish_id", table_name="wishlist_items")
    op.drop_table("wishlist_items")
    op.drop_index("ix_wishlists_name", table_name="wishlists")
    op.drop_index("ix_wishlists_owner_id", table_name="wishlists")
    op.drop_table("wishlists")
    op.drop_index("ix_offers_user_id", table_name="offers")
    op.drop_index("ix_offers_wish_id", table_name="offers")
    op.drop_table("offers")
    op.drop_index("ix_wishes_owner_id", table_name="wishes")
    op.drop_table("wishes")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
