# migrations/versions/20261019_0001_attendance_sessions.py
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "attendance_sessions",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("event_name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(16), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("active_guard", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_attendance_sessions"),
        sa.UniqueConstraint("active_guard", name="uq_attendance_sessions_active_guard"),
    )
    op.create_index("ix_attendance_sessions_code", "attendance_sessions", ["code"])
    op.create_index("ix_attendance_sessions_expires_at", "attendance_sessions", ["expires_at"])

    op.create_table(
        "attendance_redemptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(32), nullable=False),
        sa.Column("attendee_id", sa.String(120), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("credited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("credit_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_credit_error", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["session_id"], ["attendance_sessions.id"], ondelete="CASCADE",
                                name="fk_attendance_redemptions_session_id_attendance_sessions"),
        sa.PrimaryKeyConstraint("id", name="pk_attendance_redemptions"),
        sa.UniqueConstraint("session_id", "attendee_id", name="uq_redemption_session_attendee"),
    )
    op.create_index("ix_attendance_redemptions_session_id", "attendance_redemptions", ["session_id"])
    op.create_index("ix_attendance_redemptions_attendee_id", "attendance_redemptions", ["attendee_id"])
    op.create_index("ix_attendance_redemptions_credited_at", "attendance_redemptions", ["credited_at"])

    op.create_table(
        "point_ledger_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("attendee_id", sa.String(120), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("idempotency_key", sa.String(120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_point_ledger_entries"),
        sa.UniqueConstraint("idempotency_key", name="uq_point_ledger_entries_idempotency_key"),
    )
    op.create_index("ix_point_ledger_entries_attendee_id", "point_ledger_entries", ["attendee_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor", sa.String(120), nullable=True),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("diff_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(80), nullable=False),
        sa.Column("signature", sa.String(80), nullable=False),
        sa.Column("response_body", sa.LargeBinary(), nullable=False),
        sa.Column("response_mime", sa.String(80), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_idempotency_keys"),
        sa.UniqueConstraint("key", "signature", name="uq_idempotency_key_signature"),
    )
    op.create_index("ix_idempotency_keys_key", "idempotency_keys", ["key"])
    op.create_index("ix_idempotency_keys_signature", "idempotency_keys", ["signature"])


def downgrade():
    op.drop_table("idempotency_keys")
    op.drop_table("audit_logs")
    op.drop_table("point_ledger_entries")
    op.drop_table("attendance_redemptions")
    op.drop_table("attendance_sessions")
