"""create_item_sprint_history_table

Revision ID: e61a7c4f9b08
Revises: 5d9f3b8c2e47
Create Date: 2026-10-19 09:20:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = 'e61a7c4f9b08'
down_revision: Union[str, None] = '5d9f3b8c2e47'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE task_board_status AS ENUM ('to_do', 'in_progress', 'for_review', 'done')")
    op.execute("""
        CREATE TABLE item_sprint_history (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            item_id UUID NOT NULL REFERENCES items(id) ON DELETE CASCADE,
            sprint_id UUID NOT NULL REFERENCES sprints(id) ON DELETE CASCADE,
            status task_board_status NOT NULL DEFAULT 'to_do',
            removed_at TIMESTAMPTZ,
            superseded_by_id UUID REFERENCES item_sprint_history(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_item_sprint_history_item_id ON item_sprint_history(item_id)")
    op.execute("CREATE INDEX ix_item_sprint_history_sprint_id ON item_sprint_history(sprint_id)")
    # One live record per item and sprint
    op.execute(
        "CREATE UNIQUE INDEX uq_item_sprint_history_live "
        "ON item_sprint_history(item_id, sprint_id) WHERE removed_at IS NULL"
    )
    op.execute(
        "CREATE INDEX idx_item_sprint_history_board "
        "ON item_sprint_history(sprint_id, status) WHERE removed_at IS NULL"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS item_sprint_history")
    op.execute("DROP TYPE IF EXISTS task_board_status")
