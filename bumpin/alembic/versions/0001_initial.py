"""initial

Revision ID: 0001
Revises: 
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # profile and place are owned by other services; created here so joins resolve
    op.create_table('profile',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('display_name', sa.String(150), nullable=True),
        sa.Column('handle', sa.String(150), nullable=False),
    )
    op.create_index('ix_profile_handle', 'profile', ['handle'], unique=True)
    op.create_table('place',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lng', sa.Float(), nullable=True),
    )
    op.create_index('ix_place_name', 'place', ['name'])
    op.create_table('relationships',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('requester_id', sa.String(64), sa.ForeignKey('profile.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipient_id', sa.String(64), sa.ForeignKey('profile.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('hope_to_bump', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pair_low', sa.String(64), nullable=False),
        sa.Column('pair_high', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('pair_low', 'pair_high', name='uq_relationship_pair'),
        sa.CheckConstraint('requester_id != recipient_id', name='ck_relationship_not_self'),
    )
    op.create_index('ix_relationships_requester_id', 'relationships', ['requester_id'])
    op.create_index('ix_relationships_recipient_id', 'relationships', ['recipient_id'])
    op.create_table('presence',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('subject_id', sa.String(64), sa.ForeignKey('profile.id', ondelete='CASCADE'), nullable=False),
        sa.Column('place_id', sa.String(64), sa.ForeignKey('place.id', ondelete='CASCADE'), nullable=False),
        sa.Column('activity', sa.String(280), nullable=True),
        sa.Column('privacy', sa.String(20), nullable=False, server_default='public'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_presence_subject_id', 'presence', ['subject_id'])
    op.create_index('ix_presence_place_id', 'presence', ['place_id'])
    op.create_index('ix_presence_expires_at', 'presence', ['expires_at'])

def downgrade():
    op.drop_table('presence')
    op.drop_table('relationships')
    op.drop_table('place')
    op.drop_table('profile')
