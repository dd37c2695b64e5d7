from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _money(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(18, 2), **kwargs)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "clients",
        _uuid("id", primary_key=True),
        sa.Column("company_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("contact_name", sa.String(length=255)),
        sa.Column("email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=64)),
        sa.Column("address", sa.Text()),
        sa.Column("trn", sa.String(length=64)),
        _created_at(),
    )

    op.create_table(
        "shipment_bookings",
        _uuid("id", primary_key=True),
        sa.Column("reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(length=255)),
        sa.Column("status", sa.String(length=32), nullable=False),
        _created_at(),
    )

    op.create_table(
        "booking_events",
        _uuid("id", primary_key=True),
        _uuid("booking_id", sa.ForeignKey("shipment_bookings.id"), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_booking_events_booking_id", "booking_events", ["booking_id"])

    op.create_table(
        "invoice_requests",
        _uuid("id", primary_key=True),
        sa.Column("invoice_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("tracking_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("service_route", sa.String(length=64), nullable=False),
        _uuid("client_id", sa.ForeignKey("clients.id")),
        _uuid("booking_id", sa.ForeignKey("shipment_bookings.id")),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=64)),
        sa.Column("receiver_name", sa.String(length=255), nullable=False),
        sa.Column("receiver_company", sa.String(length=255)),
        sa.Column("receiver_phone", sa.String(length=64)),
        sa.Column("origin_place", sa.Text(), nullable=False),
        sa.Column("destination_place", sa.Text(), nullable=False),
        sa.Column("shipment_type", sa.String(length=64), nullable=False),
        sa.Column("sender_delivery_option", sa.Enum("PICKUP", "DROP_OFF", name="deliveryoption")),
        sa.Column("insured", sa.Boolean(), nullable=False, server_default=sa.false()),
        _money("delivery_base_amount"),
        sa.Column("carrier_reference", sa.String(length=64)),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT",
                "SUBMITTED",
                "IN_PROGRESS",
                "VERIFIED",
                "COMPLETED",
                "CANCELLED",
                name="invoicerequeststatus",
            ),
            nullable=False,
        ),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_invoice_requests_status", "invoice_requests", ["status"])

    op.create_table(
        "shipment_verifications",
        _uuid("request_id", sa.ForeignKey("invoice_requests.id", ondelete="CASCADE"), primary_key=True),
        _money("actual_weight"),
        _money("volumetric_weight"),
        _money("total_kg"),
        _money("chargeable_weight"),
        sa.Column("weight_basis", sa.Enum("ACTUAL", "VOLUMETRIC", name="weightbasis")),
        sa.Column("number_of_boxes", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("shipment_classification", sa.String(length=32)),
        sa.Column("boxes", postgresql.JSONB(), nullable=False),
        _money("total_vm"),
        sa.Column("volume_cbm", sa.Numeric(18, 4)),
        _money("declared_value"),
        _money("rate"),
        sa.Column("rate_bracket", sa.String(length=64)),
        sa.Column("verified_by", sa.String(length=255)),
        sa.Column("verified_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "invoices",
        _uuid("id", primary_key=True),
        sa.Column("invoice_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("awb_number", sa.String(length=64), nullable=False),
        _uuid("request_id", sa.ForeignKey("invoice_requests.id"), nullable=False, unique=True),
        _uuid("client_id", sa.ForeignKey("clients.id")),
        sa.Column("service_route", sa.String(length=64), nullable=False),
        _money("amount", nullable=False),
        _money("pickup_charge", nullable=False),
        _money("delivery_charge", nullable=False),
        _money("insurance_charge", nullable=False),
        _money("delivery_base_amount"),
        _money("base_amount", nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False),
        _money("tax_amount", nullable=False),
        _money("total_amount", nullable=False),
        _money("total_amount_cod"),
        _money("total_amount_tax_invoice"),
        _money("weight_kg"),
        sa.Column("number_of_boxes", sa.Integer(), nullable=False),
        sa.Column("batch_number", sa.String(length=64)),
        sa.Column("customer_trn", sa.String(length=64)),
        sa.Column("notes", sa.Text()),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum("UNPAID", "PAID", name="invoicestatus"), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        _created_at(),
    )
    op.create_index("ix_invoices_client_id", "invoices", ["client_id"])

    op.create_table(
        "delivery_assignments",
        _uuid("id", primary_key=True),
        _uuid("request_id", sa.ForeignKey("invoice_requests.id"), nullable=False),
        _uuid("invoice_id", sa.ForeignKey("invoices.id")),
        sa.Column("driver_name", sa.String(length=255)),
        sa.Column("delivery_address", sa.String(length=1024)),
        _money("delivery_charge", nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        _created_at(),
    )
    op.create_index("ix_delivery_assignments_request_id", "delivery_assignments", ["request_id"])

    op.create_table(
        "cancellation_records",
        _uuid("id", primary_key=True),
        _uuid("request_id", nullable=False, unique=True),
        _uuid("invoice_id"),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("tracking_code", sa.String(length=64), nullable=False),
        sa.Column("state", sa.Enum("ACTIVE", "CANCELLING", "CANCELLED", name="cancellationstate"), nullable=False),
        sa.Column("snapshot", postgresql.JSONB(), nullable=False),
        sa.Column("reason", sa.Text()),
        sa.Column("cancelled_by", sa.String(length=255), nullable=False),
        _created_at(),
    )

    op.create_table(
        "identifier_reservations",
        _uuid("id", primary_key=True),
        sa.Column("kind", sa.Enum("INVOICE_NUMBER", "TRACKING_CODE", name="identifierkind"), nullable=False),
        sa.Column("value", sa.String(length=64), nullable=False),
        _created_at("reserved_at"),
        sa.UniqueConstraint("kind", "value", name="uq_identifier_reservations_kind_value"),
    )

    op.create_table(
        "price_brackets",
        _uuid("id", primary_key=True),
        sa.Column("route", sa.String(length=64), nullable=False),
        sa.Column("min_kg", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_kg", sa.Numeric(10, 2)),
        sa.Column("rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("label", sa.String(length=64), nullable=False),
        sa.Column("is_special", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_price_brackets_route", "price_brackets", ["route"])

    op.create_table(
        "carrier_sync_tasks",
        _uuid("id", primary_key=True),
        _uuid("request_id"),
        _uuid("invoice_id"),
        sa.Column(
            "operation", sa.Enum("CREATE_SHIPMENT", "ISSUE_INVOICE", name="carrieroperation"), nullable=False
        ),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column(
            "status", sa.Enum("PENDING", "SUCCEEDED", "FAILED", name="carriersyncstatus"), nullable=False
        ),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text()),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_carrier_sync_tasks_status", "carrier_sync_tasks", ["status"])

    op.create_table(
        "reports",
        _uuid("id", primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        _uuid("invoice_id"),
        sa.Column("invoice_number", sa.String(length=64)),
        _money("amount"),
        sa.Column("cargo_details", postgresql.JSONB(), nullable=False),
        sa.Column("generated_by", sa.String(length=255), nullable=False),
        _created_at("generated_at"),
    )


def downgrade() -> None:
    op.drop_table("reports")
    op.drop_table("carrier_sync_tasks")
    op.drop_table("price_brackets")
    op.drop_table("identifier_reservations")
    op.drop_table("cancellation_records")
    op.drop_table("delivery_assignments")
    op.drop_table("invoices")
    op.drop_table("shipment_verifications")
    op.drop_table("invoice_requests")
    op.drop_table("booking_events")
    op.drop_table("shipment_bookings")
    op.drop_table("clients")

    op.execute("DROP TYPE IF EXISTS carriersyncstatus")
    op.execute("DROP TYPE IF EXISTS carrieroperation")
    op.execute("DROP TYPE IF EXISTS identifierkind")
    op.execute("DROP TYPE IF EXISTS cancellationstate")
    op.execute("DROP TYPE IF EXISTS invoicestatus")
    op.execute("DROP TYPE IF EXISTS weightbasis")
    op.execute("DROP TYPE IF EXISTS invoicerequeststatus")
    op.execute("DROP TYPE IF EXISTS deliveryoption")
