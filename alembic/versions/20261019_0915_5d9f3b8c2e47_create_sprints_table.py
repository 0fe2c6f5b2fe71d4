"""create_sprints_table

Revision ID: 5d9f3b8c2e47
Revises: c47d0e9a5b21
Create Date: 2026-10-19 09:15:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '5d9f3b8c2e47'
down_revision: Union[str, None] = 'c47d0e9a5b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE sprint_status AS ENUM ('ready', 'active', 'finished')")
    op.execute("""
        CREATE TABLE sprints (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            number INTEGER NOT NULL,
            status sprint_status NOT NULL DEFAULT 'ready',
            goal TEXT,
            duration INTEGER,
            start_date TIMESTAMPTZ,
            end_date TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_sprints_project_number UNIQUE (project_id, number)
        )
    """)

    op.execute("CREATE INDEX ix_sprints_project_id ON sprints(project_id)")
    op.execute("CREATE UNIQUE INDEX uq_sprints_project_ready ON sprints(project_id) WHERE status = 'ready'")
    op.execute("CREATE UNIQUE INDEX uq_sprints_project_active ON sprints(project_id) WHERE status = 'active'")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS sprints")
    op.execute("DROP TYPE IF EXISTS sprint_status")
