"""Initial schema: users, catálogo, pedidos, consolidaciones, gamificación

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=False, server_default=""),
        sa.Column("handle", sa.String(64), nullable=True),
        sa.Column("margen", sa.Float(), nullable=False, server_default="60"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_unique_constraint("uq_users_handle", "users", ["handle"])

    op.create_table(
        "catalogo_cache",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(64), nullable=False, unique=True),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("brand", sa.String(255), nullable=False),
        sa.Column("category", sa.String(500), nullable=False),
        sa.Column("sex", sa.String(20), nullable=False, server_default="Unisex"),
        sa.Column("sales_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_catalogo_cache_brand", "catalogo_cache", ["brand"])
    op.create_index("ix_catalogo_cache_category", "catalogo_cache", ["category"])

    op.create_table(
        "pedidos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("cliente", sa.String(255), nullable=False),
        sa.Column("telefono", sa.String(64), nullable=False),
        sa.Column("nota", sa.Text(), nullable=False, server_default=""),
        sa.Column("estado", sa.String(32), nullable=False, server_default="pendiente"),
        sa.Column("descuento_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("paid_to_nadin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_to_nadin_at", sa.DateTime(), nullable=True),
        sa.Column("paid_by_client", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_by_client_at", sa.DateTime(), nullable=True),
        sa.Column("sent_to_nadin_at", sa.DateTime(), nullable=True),
        sa.Column("received_nadin_at", sa.DateTime(), nullable=True),
        sa.Column("sent_to_client_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_pedidos_user_id", "pedidos", ["user_id"])

    op.create_table(
        "lineas",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pedido_id", sa.Integer(), sa.ForeignKey("pedidos.id"), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("variant_id", sa.String(64), nullable=False),
        sa.Column("sku", sa.String(120), nullable=False, server_default=""),
        sa.Column("brand", sa.String(255), nullable=False, server_default=""),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("talle", sa.String(64), nullable=False, server_default=""),
        sa.Column("color", sa.String(64), nullable=False, server_default=""),
        sa.Column("qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("mayorista", sa.Float(), nullable=False),
        sa.Column("venta", sa.Float(), nullable=False),
    )
    op.create_index("ix_lineas_pedido_id", "lineas", ["pedido_id"])
    op.create_index("ix_lineas_product_id", "lineas", ["product_id"])

    op.create_table(
        "consolidaciones",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pedido_ids", sa.Text(), nullable=False),
        sa.Column("forma_pago", sa.String(64), nullable=False),
        sa.Column("tipo_envio", sa.String(64), nullable=False),
        sa.Column("transporte_nombre", sa.String(255), nullable=True),
        sa.Column("total_mayorista", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_venta", sa.Float(), nullable=False, server_default="0"),
        sa.Column("descuento_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("ganancia", sa.Float(), nullable=False, server_default="0"),
        sa.Column("costo_real", sa.Float(), nullable=True),
        sa.Column("ganancia_neta", sa.Float(), nullable=True),
        sa.Column("csv_content", sa.Text(), nullable=True),
        sa.Column("enviado_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_consolidaciones_user_id", "consolidaciones", ["user_id"])

    op.create_table(
        "user_levels",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("current_level", sa.String(20), nullable=False, server_default="principiante"),
        sa.Column("current_xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "points",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(20), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_points_user_id", "points", ["user_id"])

    op.create_table(
        "badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("icon", sa.String(255), nullable=False, server_default=""),
        sa.Column("category", sa.String(32), nullable=False, server_default="ventas"),
        sa.Column("condition", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rarity", sa.String(20), nullable=False, server_default="common"),
    )

    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("badge_id", sa.Integer(), sa.ForeignKey("badges.id"), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])
    op.create_unique_constraint("uq_user_badge", "user_badges", ["user_id", "badge_id"])

    op.create_table(
        "brand_ambassadors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("brand_slug", sa.String(120), nullable=False, unique=True),
        sa.Column("brand_name", sa.String(255), nullable=False),
        sa.Column("logo_emoji", sa.String(16), nullable=False, server_default="🏷️"),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "user_brand_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("brand_slug", sa.String(120), nullable=False),
        sa.Column("sales_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_unique_constraint("uq_user_brand", "user_brand_sales", ["user_id", "brand_slug"])


def downgrade():
    op.drop_table("user_brand_sales")
    op.drop_table("brand_ambassadors")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_table("points")
    op.drop_table("user_levels")
    op.drop_table("consolidaciones")
    op.drop_table("lineas")
    op.drop_table("pedidos")
    op.drop_table("catalogo_cache")
    op.drop_table("users")
