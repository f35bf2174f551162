"""Initial schema: entity rows and the three append-only transaction tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Identity rows. Displayable state lives only in the transaction tables.
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE seeds (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE INDEX idx_seeds_user ON seeds(user_id, created_at DESC);
    """)

    op.execute("""
        CREATE TABLE tags (
            id UUID PRIMARY KEY,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE followups (
            id UUID PRIMARY KEY,
            seed_id UUID NOT NULL REFERENCES seeds(id) ON DELETE CASCADE
        );
    """)

    op.execute("""
        CREATE INDEX idx_followups_seed ON followups(seed_id);
    """)

    # Transaction tables: append-only, replayed in created_at order
    op.execute("""
        CREATE TABLE seed_transactions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            seed_id UUID NOT NULL REFERENCES seeds(id) ON DELETE CASCADE,
            transaction_type TEXT NOT NULL CHECK (transaction_type IN (
                'create_seed', 'edit_content', 'add_tag', 'remove_tag',
                'set_category', 'remove_category', 'add_sprout', 'add_followup'
            )),
            transaction_data JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            automation_id UUID
        );
    """)

    op.execute("""
        CREATE INDEX idx_seed_transactions_seed ON seed_transactions(seed_id, created_at);
    """)

    op.execute("""
        CREATE INDEX idx_seed_transactions_automation ON seed_transactions(automation_id)
        WHERE automation_id IS NOT NULL;
    """)

    op.execute("""
        CREATE TABLE tag_transactions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tag_id UUID NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            transaction_type TEXT NOT NULL CHECK (transaction_type IN ('creation', 'edit', 'set_color')),
            transaction_data JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            automation_id UUID
        );
    """)

    op.execute("""
        CREATE INDEX idx_tag_transactions_tag ON tag_transactions(tag_id, created_at);
    """)

    op.execute("""
        CREATE INDEX idx_tag_transactions_automation ON tag_transactions(automation_id)
        WHERE automation_id IS NOT NULL;
    """)

    op.execute("""
        CREATE TABLE followup_transactions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            followup_id UUID NOT NULL REFERENCES followups(id) ON DELETE CASCADE,
            transaction_type TEXT NOT NULL CHECK (transaction_type IN ('creation', 'edit', 'dismissal', 'snooze')),
            transaction_data JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            automation_id UUID
        );
    """)

    op.execute("""
        CREATE INDEX idx_followup_transactions_followup ON followup_transactions(followup_id, created_at);
    """)

    op.execute("""
        CREATE INDEX idx_followup_transactions_automation ON followup_transactions(automation_id)
        WHERE automation_id IS NOT NULL;
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS followup_transactions CASCADE;")
    op.execute("DROP TABLE IF EXISTS tag_transactions CASCADE;")
    op.execute("DROP TABLE IF EXISTS seed_transactions CASCADE;")
    op.execute("DROP TABLE IF EXISTS followups CASCADE;")
    op.execute("DROP TABLE IF EXISTS tags CASCADE;")
    op.execute("DROP TABLE IF EXISTS seeds CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
