"""initial telemetry engine schema

Revision ID: 20261018_initial_telemetry_engine
"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_initial_telemetry_engine"
down_revision = None
branch_labels = None
depends_on = None

INGESTION_ID = sa.BigInteger().with_variant(sa.Integer, "sqlite")


def upgrade():
    op.create_table(
        "plant",
        sa.Column("plant_id", sa.Uuid, primary_key=True),
        sa.Column("tenant_id", sa.Uuid, nullable=False, index=True),
        sa.Column("plant_code", sa.String(50)),
        sa.Column("plant_name", sa.String(255)),
        sa.Column("created_at", sa.DateTime),
    )
    op.create_table(
        "machine",
        sa.Column("machine_id", sa.Uuid, primary_key=True),
        sa.Column("plant_id", sa.Uuid, sa.ForeignKey("plant.plant_id"), nullable=False, index=True),
        sa.Column("machine_code", sa.String(50)),
        sa.Column("machine_name", sa.String(255)),
        sa.Column("machine_type", sa.String(100)),
        sa.Column("status", sa.String(20)),
        sa.Column("created_at", sa.DateTime),
    )

    op.create_table(
        "telemetry_ingestion",
        sa.Column("ingestion_id", INGESTION_ID, primary_key=True, autoincrement=True),
        sa.Column("machine_id", sa.Uuid, sa.ForeignKey("machine.machine_id"), nullable=False, index=True),
        sa.Column("recorded_at", sa.DateTime, nullable=False, index=True),
        sa.Column("status", sa.String(50)),
    )
    op.create_table(
        "telemetry_mechanical",
        sa.Column("ingestion_id", INGESTION_ID, sa.ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("vibration_x", sa.Numeric(12, 4)),
        sa.Column("vibration_y", sa.Numeric(12, 4)),
        sa.Column("vibration_z", sa.Numeric(12, 4)),
        sa.Column("rpm", sa.Numeric(12, 2)),
    )
    op.create_table(
        "telemetry_electrical",
        sa.Column("ingestion_id", INGESTION_ID, sa.ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("r_voltage", sa.Numeric(12, 4)),
        sa.Column("y_voltage", sa.Numeric(12, 4)),
        sa.Column("b_voltage", sa.Numeric(12, 4)),
        sa.Column("r_current", sa.Numeric(12, 4)),
        sa.Column("y_current", sa.Numeric(12, 4)),
        sa.Column("b_current", sa.Numeric(12, 4)),
        sa.Column("frequency", sa.Numeric(8, 3)),
        sa.Column("power_factor", sa.Numeric(6, 4)),
    )
    op.create_table(
        "telemetry_environmental",
        sa.Column("ingestion_id", INGESTION_ID, sa.ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("temperature", sa.Numeric(8, 3)),
        sa.Column("humidity", sa.Numeric(8, 3)),
        sa.Column("pressure", sa.Numeric(10, 3)),
        sa.Column("flowrate", sa.Numeric(10, 3)),
    )
    op.create_table(
        "telemetry_energy",
        sa.Column("ingestion_id", INGESTION_ID, sa.ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("energy_import_kwh", sa.Numeric(15, 4)),
        sa.Column("energy_export_kwh", sa.Numeric(15, 4)),
        sa.Column("energy_import_kvah", sa.Numeric(15, 4)),
        sa.Column("energy_export_kvah", sa.Numeric(15, 4)),
    )

    # The composite primary key makes re-derivation of a reading a no-op
    op.create_table(
        "machine_health",
        sa.Column("machine_id", sa.Uuid, sa.ForeignKey("machine.machine_id"), primary_key=True),
        sa.Column("recorded_at", sa.DateTime, primary_key=True),
        sa.Column("health_score", sa.Integer, nullable=False),
        sa.Column("avg_load", sa.Numeric(7, 2), nullable=False),
        sa.Column("runtime_hours", sa.Numeric(18, 9), nullable=False),
    )

    op.create_table(
        "alert_threshold",
        sa.Column("threshold_id", sa.Uuid, primary_key=True),
        sa.Column("tenant_id", sa.Uuid, nullable=True),
        sa.Column("machine_type", sa.String(100), nullable=True),
        sa.Column("parameter", sa.String(50), nullable=False),
        sa.Column("warning_value", sa.Numeric(15, 4), nullable=False),
        sa.Column("critical_value", sa.Numeric(15, 4), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_alert_threshold_scope", "alert_threshold", ["tenant_id", "machine_type", "parameter"])

    op.create_table(
        "alert_event",
        sa.Column("alert_id", sa.Uuid, primary_key=True),
        sa.Column("machine_id", sa.Uuid, sa.ForeignKey("machine.machine_id"), nullable=False, index=True),
        sa.Column("parameter", sa.String(50), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("actual_value", sa.Numeric),
        sa.Column("generated_at", sa.DateTime, nullable=False, index=True),
        sa.Column("alert_status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("threshold_id", sa.Uuid, sa.ForeignKey("alert_threshold.threshold_id"), nullable=True),
    )
    # At most one ACTIVE alert per machine and parameter
    op.create_index(
        "uq_alert_event_active",
        "alert_event",
        ["machine_id", "parameter"],
        unique=True,
        postgresql_where=sa.text("alert_status = 'ACTIVE'"),
        sqlite_where=sa.text("alert_status = 'ACTIVE'"),
    )

    op.create_table(
        "alert_acknowledgement",
        sa.Column("acknowledgement_id", sa.Uuid, primary_key=True),
        sa.Column("alert_id", sa.Uuid, sa.ForeignKey("alert_event.alert_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("technician_name", sa.String(255), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("action_taken", sa.Text),
        sa.Column("acknowledged_at", sa.DateTime, nullable=False),
    )

    op.create_table(
        "processing_watermark",
        sa.Column("phase", sa.String(100), primary_key=True),
        sa.Column("last_recorded_at", sa.DateTime, nullable=False),
        sa.Column("last_ingestion_id", sa.BigInteger, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    # Health progress per machine, including rows skipped as malformed
    op.create_table(
        "health_watermark",
        sa.Column("machine_id", sa.Uuid, sa.ForeignKey("machine.machine_id"), primary_key=True),
        sa.Column("last_recorded_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )


def downgrade():
    op.drop_table("health_watermark")
    op.drop_table("processing_watermark")
    op.drop_table("alert_acknowledgement")
    op.drop_index("uq_alert_event_active", table_name="alert_event")
    op.drop_table("alert_event")
    op.drop_index("ix_alert_threshold_scope", table_name="alert_threshold")
    op.drop_table("alert_threshold")
    op.drop_table("machine_health")
    for table in ("telemetry_energy", "telemetry_environmental", "telemetry_electrical", "telemetry_mechanical", "telemetry_ingestion"):
        op.drop_table(table)
    op.drop_table("machine")
    op.drop_table("plant")
