"""Create students and test_scores tables

Revision ID: 0001_students_and_test_scores
Revises:
Create Date: 2026-10-19

- students: roster keyed by external_id (student number)
- test_scores: one row per (student, test name, test date)
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_students_and_test_scores'
down_revision = None
branch_labels = None
depends_on = None


SCORE_COLUMNS = (
    'section_a',
    'section_b',
    'section_c',
    'section_d',
    'section_ad',
    'section_bc',
    'total_score',
)


def upgrade() -> None:
    op.create_table(
        'students',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('external_id', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('credential_hash', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_students_external_id', 'students', ['external_id'], unique=True)

    op.create_table(
        'test_scores',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_external_id', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('test_name', sa.String(255), nullable=False),
        sa.Column('test_date', sa.Date(), nullable=False),
        *[
            sa.Column(name, sa.Float(), nullable=False, server_default='0')
            for name in SCORE_COLUMNS
        ],
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'student_external_id', 'test_name', 'test_date',
            name='uq_test_scores_student_test',
        ),
    )
    op.create_index('ix_test_scores_student_external_id', 'test_scores', ['student_external_id'], unique=False)
    op.create_index('idx_test_scores_test', 'test_scores', ['test_name', 'test_date'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_test_scores_test', table_name='test_scores')
    op.drop_index('ix_test_scores_student_external_id', table_name='test_scores')
    op.drop_table('test_scores')
    op.drop_index('ix_students_external_id', table_name='students')
    op.drop_table('students')
