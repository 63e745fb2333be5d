"""Shared links, daily reports and holidays

Revision ID: 0002_links_reports_holidays
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002_links_reports_holidays"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

link_tab = postgresql.ENUM("Git", "Excel", "Codebase", name="link_tab", create_type=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    link_tab.create(bind, checkfirst=True)

    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("tab", link_tab, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_links_tab", "links", ["tab"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("report", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("break_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("note", sa.String(length=1000), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("start_time < end_time", name="ck_reports_time_range"),
        sa.CheckConstraint("break_minutes >= 0", name="ck_reports_break_minutes"),
    )
    op.create_index("ix_reports_employee_id", "reports", ["employee_id"], unique=False)
    op.create_index("ix_reports_created_at", "reports", ["created_at"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("holiday_date", sa.Date(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_holidays_holiday_date", "holidays", ["holiday_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_holidays_holiday_date", table_name="holidays")
    op.drop_table("holidays")
    op.drop_index("ix_reports_created_at", table_name="reports")
    op.drop_index("ix_reports_employee_id", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_links_tab", table_name="links")
    op.drop_table("links")

    bind = op.get_bind()
    link_tab.drop(bind, checkfirst=True)
