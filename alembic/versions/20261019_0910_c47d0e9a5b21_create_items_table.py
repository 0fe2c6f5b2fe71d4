"""create_items_table

Revision ID: c47d0e9a5b21
Revises: 8b2e4d6f1a33
Create Date: 2026-10-19 09:10:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = 'c47d0e9a5b21'
down_revision: Union[str, None] = '8b2e4d6f1a33'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE item_type AS ENUM ('epic', 'story', 'task', 'bug')")
    op.execute("CREATE TYPE item_priority AS ENUM ('urgent', 'high', 'medium', 'low', 'none')")
    op.execute("CREATE TYPE item_status AS ENUM ('not_started', 'active', 'done')")
    op.execute("""
        CREATE TABLE items (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            title VARCHAR(500) NOT NULL,
            description TEXT,
            type item_type NOT NULL DEFAULT 'task',
            priority item_priority NOT NULL DEFAULT 'none',
            effort INTEGER NOT NULL DEFAULT 0,
            status item_status NOT NULL DEFAULT 'not_started',
            assignee_id UUID REFERENCES users(id) ON DELETE SET NULL,
            reporter_id UUID REFERENCES users(id) ON DELETE SET NULL,
            parent_id UUID REFERENCES items(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_items_effort_non_negative CHECK (effort >= 0)
        )
    """)
    op.execute("CREATE INDEX ix_items_project_id ON items(project_id)")
    op.execute("CREATE INDEX ix_items_assignee_id ON items(assignee_id)")
    op.execute("CREATE INDEX ix_items_parent_id ON items(parent_id)")
    op.execute("CREATE INDEX idx_items_created_at ON items(created_at)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS items")
    op.execute("DROP TYPE IF EXISTS item_status")
    op.execute("DROP TYPE IF EXISTS item_priority")
    op.execute("DROP TYPE IF EXISTS item_type")
