"""Initial migration: create all flashcard engine tables

Revision ID: initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'initial'
down_revision = None
branch_labels = None
depends_on = None

# Enum columns store member names
DIRECTIONS = (
    'DIRECT', 'REVERSE', 'BOTH', 'FILLIN', 'FILLIN_REVERSE', 'FILLIN_BOTH',
    'JUST_INFORMATION', 'QUIZ_DIRECT', 'QUIZ_REVERSE', 'QUIZ_BOTH',
)
STATUSES = ('NEW', 'LEARNING', 'REVIEW', 'GRADUATED')
SIDES = ('DIRECT', 'REVERSE')


def upgrade() -> None:
    flashcard_direction = sa.Enum(*DIRECTIONS, name='flashcarddirection')
    flashcard_status = sa.Enum(*STATUSES, name='flashcardstatus')
    card_side = sa.Enum(*SIDES, name='cardside')

    # Create collection table
    op.create_table(
        'collection',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_collection_user_id'), 'collection', ['user_id'], unique=False)

    # Create definition table
    op.create_table(
        'definition',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('word', sa.String(), nullable=False),
        sa.Column('definition', sa.String(), nullable=False),
        sa.Column('language_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_definition_word'), 'definition', ['word'], unique=False)

    # Create collection_item table
    op.create_table(
        'collection_item',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('definition_id', sa.Integer(), nullable=True),
        sa.Column('free_content_front', sa.String(), nullable=True),
        sa.Column('free_content_back', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('auto_progress', sa.Boolean(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ),
        sa.ForeignKeyConstraint(['definition_id'], ['definition.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_collection_item_collection_id'), 'collection_item', ['collection_id'], unique=False)

    # Create flashcard table
    op.create_table(
        'flashcard',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('direction', flashcard_direction, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['collection_item.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_flashcard_collection_id'), 'flashcard', ['collection_id'], unique=False)

    # Create user_flashcard_progress table
    op.create_table(
        'user_flashcard_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flashcard_id', sa.Integer(), nullable=False),
        sa.Column('card_side', card_side, nullable=False),
        sa.Column('status', flashcard_status, nullable=False),
        sa.Column('stability', sa.Float(), nullable=False),
        sa.Column('difficulty', sa.Float(), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False),
        sa.Column('review_count', sa.Integer(), nullable=False),
        sa.Column('last_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('next_review_at', sa.DateTime(), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False),
        sa.Column('created_time', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcard.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_flashcard_progress_user_id'), 'user_flashcard_progress', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_flashcard_progress_flashcard_id'), 'user_flashcard_progress', ['flashcard_id'], unique=False)
    # One live row per (user, flashcard, side)
    op.create_index(
        'uq_user_flashcard_progress_active',
        'user_flashcard_progress',
        ['user_id', 'flashcard_id', 'card_side'],
        unique=True,
        sqlite_where=sa.text('archived = 0'),
        postgresql_where=sa.text('NOT archived'),
    )

    # Create flashcard_review_history table
    op.create_table(
        'flashcard_review_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flashcard_id', sa.Integer(), nullable=False),
        sa.Column('card_side', card_side, nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('elapsed_days', sa.Integer(), nullable=False),
        sa.Column('scheduled_days', sa.Integer(), nullable=False),
        sa.Column('stability', sa.Float(), nullable=False),
        sa.Column('difficulty', sa.Float(), nullable=False),
        sa.Column('previous_status', flashcard_status, nullable=False),
        sa.Column('review_time', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcard.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_flashcard_review_history_user_id'), 'flashcard_review_history', ['user_id'], unique=False)
    op.create_index(op.f('ix_flashcard_review_history_flashcard_id'), 'flashcard_review_history', ['flashcard_id'], unique=False)
    op.create_index(op.f('ix_flashcard_review_history_review_time'), 'flashcard_review_history', ['review_time'], unique=False)

    # Create flashcard_quiz_option table
    op.create_table(
        'flashcard_quiz_option',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('flashcard_id', sa.Integer(), nullable=False),
        sa.Column('correct_answer_text', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcard.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('flashcard_id')
    )

    # Create user_quiz_answer_history table
    op.create_table(
        'user_quiz_answer_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flashcard_id', sa.Integer(), nullable=False),
        sa.Column('selected_option_text', sa.String(), nullable=False),
        sa.Column('is_correct_selection', sa.Boolean(), nullable=False),
        sa.Column('presented_options', sa.JSON(), nullable=True),
        sa.Column('answered_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcard.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_quiz_answer_history_user_id'), 'user_quiz_answer_history', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_quiz_answer_history_flashcard_id'), 'user_quiz_answer_history', ['flashcard_id'], unique=False)

    # Create flashcard_level table
    op.create_table(
        'flashcard_level',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('min_cards', sa.Integer(), nullable=False),
        sa.Column('min_success_rate', sa.Float(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_flashcard_level_collection_id'), 'flashcard_level', ['collection_id'], unique=False)

    # Create level_prerequisite table
    op.create_table(
        'level_prerequisite',
        sa.Column('level_id', sa.Integer(), nullable=False),
        sa.Column('prerequisite_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['level_id'], ['flashcard_level.id'], ),
        sa.ForeignKeyConstraint(['prerequisite_id'], ['flashcard_level.id'], ),
        sa.PrimaryKeyConstraint('level_id', 'prerequisite_id')
    )

    # Create flashcard_level_item table
    op.create_table(
        'flashcard_level_item',
        sa.Column('level_id', sa.Integer(), nullable=False),
        sa.Column('flashcard_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['level_id'], ['flashcard_level.id'], ),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcard.id'], ),
        sa.PrimaryKeyConstraint('level_id', 'flashcard_id')
    )

    # Create user_level_progress table
    op.create_table(
        'user_level_progress',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('level_id', sa.Integer(), nullable=False),
        sa.Column('cards_completed', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('total_answers', sa.Integer(), nullable=False),
        sa.Column('unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['level_id'], ['flashcard_level.id'], ),
        sa.PrimaryKeyConstraint('user_id', 'level_id')
    )

    # Create user_settings table
    op.create_table(
        'user_settings',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('optimal_retention', sa.Float(), nullable=True),
        sa.Column('last_calculated', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('user_id')
    )


def downgrade() -> None:
    op.drop_table('user_settings')
    op.drop_table('user_level_progress')
    op.drop_table('flashcard_level_item')
    op.drop_table('level_prerequisite')
    op.drop_index(op.f('ix_flashcard_level_collection_id'), table_name='flashcard_level')
    op.drop_table('flashcard_level')
    op.drop_index(op.f('ix_user_quiz_answer_history_flashcard_id'), table_name='user_quiz_answer_history')
    op.drop_index(op.f('ix_user_quiz_answer_history_user_id'), table_name='user_quiz_answer_history')
    op.drop_table('user_quiz_answer_history')
    op.drop_table('flashcard_quiz_option')
    op.drop_index(op.f('ix_flashcard_review_history_review_time'), table_name='flashcard_review_history')
    op.drop_index(op.f('ix_flashcard_review_history_flashcard_id'), table_name='flashcard_review_history')
    op.drop_index(op.f('ix_flashcard_review_history_user_id'), table_name='flashcard_review_history')
    op.drop_table('flashcard_review_history')
    op.drop_index('uq_user_flashcard_progress_active', table_name='user_flashcard_progress')
    op.drop_index(op.f('ix_user_flashcard_progress_flashcard_id'), table_name='user_flashcard_progress')
    op.drop_index(op.f('ix_user_flashcard_progress_user_id'), table_name='user_flashcard_progress')
    op.drop_table('user_flashcard_progress')
    op.drop_index(op.f('ix_flashcard_collection_id'), table_name='flashcard')
    op.drop_table('flashcard')
    op.drop_index(op.f('ix_collection_item_collection_id'), table_name='collection_item')
    op.drop_table('collection_item')
    op.drop_index(op.f('ix_definition_word'), table_name='definition')
    op.drop_table('definition')
    op.drop_index(op.f('ix_collection_user_id'), table_name='collection')
    op.drop_table('collection')

    sa.Enum(name='cardside').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='flashcardstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='flashcarddirection').drop(op.get_bind(), checkfirst=True)
