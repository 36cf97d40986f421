"""001 – Initial schema: all tables, indexes, enums, seed data.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+07:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "manager", "hr", "admin"]),
    (
        "leave_type",
        [
            "vacation",
            "sick",
            "personal",
            "maternity",
            "military",
            "ordination",
            "sterilization",
            "training",
            "other",
        ],
    ),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("time_slot", ["full_day", "half_morning", "half_afternoon", "hourly"]),
    ("holiday_type", ["public", "special"]),
    ("notification_type", ["info", "action_required", "approval", "rejection"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. companies ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE companies (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            code        VARCHAR(30)  NOT NULL UNIQUE,
            name        VARCHAR(200) NOT NULL,
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code  VARCHAR(20)  NOT NULL UNIQUE,
            email          VARCHAR(255) NOT NULL UNIQUE,
            first_name     VARCHAR(100) NOT NULL,
            last_name      VARCHAR(100),
            department     VARCHAR(150),
            role           user_role NOT NULL DEFAULT 'employee',
            company_id     UUID REFERENCES companies(id),
            start_date     DATE NOT NULL,
            manager_id     UUID REFERENCES employees(id),
            is_active      BOOLEAN DEFAULT TRUE,
            created_at     TIMESTAMPTZ DEFAULT NOW(),
            updated_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_employees_manager_id ON employees(manager_id)")

    # ── 3. delegate_approvers ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE delegate_approvers (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            manager_id   UUID NOT NULL REFERENCES employees(id),
            delegate_id  UUID NOT NULL REFERENCES employees(id),
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            is_active    BOOLEAN DEFAULT TRUE,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_delegate_window CHECK (end_date >= start_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_delegate_approvers_delegate "
        "ON delegate_approvers(delegate_id, is_active)"
    )

    # ── 4. public_holidays ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE public_holidays (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            date          DATE NOT NULL,
            name          VARCHAR(200) NOT NULL,
            holiday_type  holiday_type NOT NULL DEFAULT 'public',
            company_id    UUID REFERENCES companies(id),
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_public_holidays_date_company UNIQUE (date, company_id)
        )
    """)
    op.execute("CREATE INDEX ix_public_holidays_date ON public_holidays(date)")

    # ── 5. working_saturdays ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE working_saturdays (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            date         DATE NOT NULL,
            start_time   TIME NOT NULL,
            end_time     TIME NOT NULL,
            work_hours   NUMERIC(4,2) NOT NULL,
            description  VARCHAR(255),
            company_id   UUID REFERENCES companies(id),
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_working_saturdays_date_company UNIQUE (date, company_id),
            CONSTRAINT ck_working_saturdays_hours CHECK (work_hours > 0)
        )
    """)

    # ── 6. system_settings ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE system_settings (
            key          VARCHAR(100) PRIMARY KEY,
            value        VARCHAR(255) NOT NULL,
            description  VARCHAR(255),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 7. leave_quota_settings ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_quota_settings (
            leave_type                   leave_type PRIMARY KEY,
            default_days                 NUMERIC(6,2) NOT NULL DEFAULT 0,
            min_tenure_years             INTEGER NOT NULL DEFAULT 0,
            allow_carry_over             BOOLEAN NOT NULL DEFAULT FALSE,
            max_carry_over_days          NUMERIC(6,2) NOT NULL DEFAULT 0,
            medical_cert_threshold_days  NUMERIC(6,2),
            is_balance_tracked           BOOLEAN NOT NULL DEFAULT TRUE,
            updated_at                   TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 8. leave_balances ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_balances (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id),
            leave_type       leave_type NOT NULL,
            year             INTEGER NOT NULL,
            entitlement      NUMERIC(6,2) NOT NULL DEFAULT 0,
            used             NUMERIC(6,2) NOT NULL DEFAULT 0,
            remaining        NUMERIC(6,2) NOT NULL DEFAULT 0,
            carry_over       NUMERIC(6,2) NOT NULL DEFAULT 0,
            is_auto_created  BOOLEAN NOT NULL DEFAULT TRUE,
            updated_at       TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_balance UNIQUE (employee_id, leave_type, year)
        )
    """)
    op.execute("CREATE INDEX idx_leave_balances_year ON leave_balances(year)")

    # ── 9. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                        UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id               UUID NOT NULL REFERENCES employees(id),
            leave_type                leave_type NOT NULL,
            start_date                DATE NOT NULL,
            end_date                  DATE NOT NULL,
            time_slot                 time_slot NOT NULL DEFAULT 'full_day',
            start_time                TIME,
            end_time                  TIME,
            usage_amount              NUMERIC(6,2) NOT NULL,
            reason                    TEXT,
            status                    leave_status NOT NULL DEFAULT 'pending',
            has_medical_certificate   BOOLEAN NOT NULL DEFAULT FALSE,
            medical_certificate_file  VARCHAR(500),
            approver_id               UUID REFERENCES employees(id),
            approved_at               TIMESTAMPTZ,
            rejection_reason          TEXT,
            cancelled_by              UUID REFERENCES employees(id),
            cancelled_at              TIMESTAMPTZ,
            created_at                TIMESTAMPTZ DEFAULT NOW(),
            updated_at                TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_request_range CHECK (end_date >= start_date),
            CONSTRAINT ck_leave_request_usage CHECK (usage_amount > 0)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_employee_status "
        "ON leave_requests(employee_id, status)"
    )
    op.execute(
        "CREATE INDEX idx_leave_requests_dates ON leave_requests(start_date, end_date)"
    )

    # ── 10. leave_request_year_splits ─────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_request_year_splits (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            leave_request_id  UUID NOT NULL REFERENCES leave_requests(id) ON DELETE CASCADE,
            year              INTEGER NOT NULL,
            usage_amount      NUMERIC(6,2) NOT NULL,
            CONSTRAINT uq_leave_split_year UNIQUE (leave_request_id, year)
        )
    """)

    # ── 11. notifications ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id  UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            type          notification_type DEFAULT 'info',
            title         VARCHAR(200) NOT NULL,
            message       TEXT NOT NULL,
            action_url    VARCHAR(500),
            entity_type   VARCHAR(50),
            entity_id     UUID,
            is_read       BOOLEAN DEFAULT FALSE,
            read_at       TIMESTAMPTZ,
            created_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_unread "
        "ON notifications(recipient_id, is_read)"
    )

    # ── 12. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID REFERENCES employees(id),
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID,
            old_values   JSONB,
            new_values   JSONB,
            ip_address   INET,
            user_agent   TEXT,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity     ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")

    # ── Seed data ─────────────────────────────────────────────────────────

    # Quota settings
    op.execute("""
        INSERT INTO leave_quota_settings
            (leave_type, default_days, min_tenure_years, allow_carry_over,
             max_carry_over_days, medical_cert_threshold_days, is_balance_tracked)
        VALUES
            ('vacation',      10,  1, TRUE,  5, NULL, TRUE),
            ('sick',          30,  0, FALSE, 0, 3,    TRUE),
            ('personal',       3,  0, FALSE, 0, NULL, TRUE),
            ('maternity',     98,  0, FALSE, 0, NULL, TRUE),
            ('military',      60,  0, FALSE, 0, NULL, TRUE),
            ('ordination',   120,  2, FALSE, 0, NULL, TRUE),
            ('sterilization',  1,  0, FALSE, 0, NULL, TRUE),
            ('training',      30,  0, FALSE, 0, NULL, TRUE),
            ('other',          0,  0, FALSE, 0, NULL, FALSE)
    """)

    # System settings
    op.execute("""
        INSERT INTO system_settings (key, value, description) VALUES
        ('WORK_HOURS_PER_DAY', '7.5', 'Length of a working day in hours'),
        ('LEAVE_ADVANCE_DAYS', '3',   'Minimum days of notice for vacation leave')
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "leave_request_year_splits",
        "leave_requests",
        "leave_balances",
        "leave_quota_settings",
        "system_settings",
        "working_saturdays",
        "public_holidays",
        "delegate_approvers",
        "employees",
        "companies",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    # Drop extensions
    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
