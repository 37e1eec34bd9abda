# migrations/versions/20250101_0001_initial_schema.py
"""initial schema: users, traders, courses, enrollments, payments

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-01-01 00:00:00
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

TS = sa.DateTime(timezone=True)

ENROLLMENT_STATUS = sa.Enum("pending", "validated", "approved", "rejected", name="enrollmentstatus")
PAYMENT_STATUS = sa.Enum("created", "completed", "failed", "refunded", name="paymentstatus")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("status_reason", sa.Text(), nullable=False),
        sa.Column("last_status_update", TS, nullable=False),
        sa.Column("last_login_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_status_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_user_status_history_user_id", "user_status_history", ["user_id"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("course_code", sa.String(40), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("start_date", TS, nullable=True),
        sa.Column("end_date", TS, nullable=True),
        sa.Column("course_date", TS, nullable=True),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("hours", sa.Integer(), nullable=False),
        sa.Column("max_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("course_tags", sa.JSON(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("stripe_product_id", sa.String(80), nullable=True),
        sa.Column("stripe_price_id", sa.String(80), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("generated_code", sa.String(6), nullable=True),
        sa.Column("generated_code_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint("available_seats >= 0", name="ck_courses_seats_non_negative"),
        sa.CheckConstraint("available_seats <= max_seats", name="ck_courses_seats_within_max"),
    )
    op.create_index("ix_courses_generated_code", "courses", ["generated_code"])

    op.create_table(
        "course_registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("registered_at", TS, nullable=False),
        sa.UniqueConstraint("course_id", "user_id", name="uq_registration_course_user"),
    )
    op.create_index("ix_course_registrations_course_id", "course_registrations", ["course_id"])
    op.create_index("ix_course_registrations_user_id", "course_registrations", ["user_id"])

    op.create_table(
        "course_approval_queue",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("email", sa.String(160), nullable=True),
        sa.Column("queued_at", TS, nullable=False),
        sa.UniqueConstraint("course_id", "user_id", name="uq_approval_course_user"),
    )
    op.create_index("ix_course_approval_queue_course_id", "course_approval_queue", ["course_id"])
    op.create_index("ix_course_approval_queue_user_id", "course_approval_queue", ["user_id"])

    op.create_table(
        "traders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("company", sa.String(200), nullable=False),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("id_card", sa.String(32), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("start_date", TS, nullable=True),
        sa.Column("end_date", TS, nullable=True),
        sa.Column("duration_display", sa.JSON(), nullable=False),
        sa.Column("remaining_time_display", sa.JSON(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_traders_user_id", "traders", ["user_id"], unique=True)
    op.create_index("ix_traders_id_card", "traders", ["id_card"], unique=True)
    op.create_index("ix_traders_phone_number", "traders", ["phone_number"])

    op.create_table(
        "trader_trainings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("hours", sa.Integer(), nullable=False),
        sa.Column("date", TS, nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("trader_id", "course_id", name="uq_training_trader_course"),
    )
    op.create_index("ix_trader_trainings_trader_id", "trader_trainings", ["trader_id"])
    op.create_index("ix_trader_trainings_course_id", "trader_trainings", ["course_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("status", ENROLLMENT_STATUS, nullable=False),
        sa.Column("enroll_date", TS, nullable=False),
        sa.Column("validation_code", sa.String(6), nullable=True),
        sa.Column("validated_at", TS, nullable=True),
        sa.Column("verified_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_status", "enrollments", ["status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("status", PAYMENT_STATUS, nullable=False),
        sa.Column("customer_email", sa.String(160), nullable=True),
        sa.Column("customer_name", sa.String(160), nullable=True),
        sa.Column("payment_method", sa.String(40), nullable=True),
        sa.Column("payment_intent", sa.String(255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_payments_session_id", "payments", ["session_id"], unique=True)
    op.create_index("ix_payments_user_id", "payments", ["user_id"])
    op.create_index("ix_payments_course_id", "payments", ["course_id"])
    op.create_index("ix_payments_payment_intent", "payments", ["payment_intent"])
    op.create_index("ix_payments_status_created", "payments", ["status", "created_at"])
    op.create_index("ix_payments_user_status", "payments", ["user_id", "status"])


def downgrade():
    op.drop_table("payments")
    op.drop_table("enrollments")
    op.drop_table("trader_trainings")
    op.drop_table("traders")
    op.drop_table("course_approval_queue")
    op.drop_table("course_registrations")
    op.drop_table("courses")
    op.drop_table("user_status_history")
    op.drop_table("users")
    PAYMENT_STATUS.drop(op.get_bind(), checkfirst=True)
    ENROLLMENT_STATUS.drop(op.get_bind(), checkfirst=True)
