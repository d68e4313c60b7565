"""Initial Sitewatch schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('unread_notification_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.CheckConstraint("role IN ('user', 'admin')", name='chk_user_role_valid'),
        sa.CheckConstraint('unread_notification_count >= 0', name='chk_unread_count_non_negative'),
    )

    op.create_table(
        'websites',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('monitoring_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_monitored_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'url', name='uniq_website_url_per_user'),
        sa.CheckConstraint('length(trim(name)) > 0', name='chk_website_name_not_empty'),
        sa.CheckConstraint('length(trim(url)) > 0', name='chk_website_url_not_empty'),
    )
    op.create_index('idx_websites_user_id', 'websites', ['user_id'])

    op.create_table(
        'audit_schedules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('website_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=False, server_default='weekly'),
        sa.Column('categories', sa.JSON(), nullable=True),
        sa.Column('time_of_day', sa.String(length=8), nullable=False, server_default='09:00'),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_run_at', sa.DateTime(), nullable=True),
        sa.Column('next_run_at', sa.DateTime(), nullable=True),
        sa.Column('last_audit_id', sa.Uuid(), nullable=True),
        sa.Column('run_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failure_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "frequency IN ('daily', 'weekly', 'biweekly', 'monthly', 'quarterly', 'one_time')",
            name='chk_schedule_frequency_valid',
        ),
        sa.CheckConstraint('day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)', name='chk_day_of_week_range'),
        sa.CheckConstraint('day_of_month IS NULL OR (day_of_month >= 1 AND day_of_month <= 31)', name='chk_day_of_month_range'),
        sa.CheckConstraint('run_count >= 0', name='chk_run_count_non_negative'),
    )
    op.create_index('idx_schedules_due', 'audit_schedules', ['is_active', 'next_run_at'])
    op.create_index('idx_schedules_website_id', 'audit_schedules', ['website_id'])
    op.create_index('idx_schedules_user_id', 'audit_schedules', ['user_id'])

    op.create_table(
        'audits',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('website_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('schedule_id', sa.Uuid(), nullable=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('trigger', sa.String(length=20), nullable=False, server_default='manual'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('categories', sa.JSON(), nullable=True),
        sa.Column('overall_score', sa.Float(), nullable=True),
        sa.Column('seo_score', sa.Float(), nullable=True),
        sa.Column('performance_score', sa.Float(), nullable=True),
        sa.Column('accessibility_score', sa.Float(), nullable=True),
        sa.Column('security_score', sa.Float(), nullable=True),
        sa.Column('content_score', sa.Float(), nullable=True),
        sa.Column('mobile_score', sa.Float(), nullable=True),
        sa.Column('issues', sa.JSON(), nullable=True),
        sa.Column('critical_issues', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('queue_job_id', sa.String(), nullable=True),
        sa.Column('state_history', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['schedule_id'], ['audit_schedules.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('pending', 'running', 'completed', 'failed')", name='chk_audit_status_valid'),
        sa.CheckConstraint("trigger IN ('manual', 'scheduled', 'monitoring')", name='chk_audit_trigger_valid'),
        sa.CheckConstraint(
            'overall_score IS NULL OR (overall_score >= 0 AND overall_score <= 100)',
            name='chk_audit_overall_score_range',
        ),
    )
    op.create_index('idx_audits_website_id', 'audits', ['website_id'])
    op.create_index('idx_audits_user_id', 'audits', ['user_id'])
    op.create_index('idx_audits_status', 'audits', ['status'])
    op.create_index('idx_audits_trigger', 'audits', ['trigger'])
    op.create_index('idx_audits_created_at', 'audits', ['created_at'])

    op.create_table(
        'monitoring_configs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('website_id', sa.Uuid(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('frequency', sa.String(length=20), nullable=False, server_default='weekly'),
        sa.Column('alert_threshold', sa.Float(), nullable=False, server_default='10'),
        sa.Column('metrics', sa.JSON(), nullable=True),
        sa.Column('categories', sa.JSON(), nullable=True),
        sa.Column('email_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('slack_webhook', sa.String(), nullable=True),
        sa.Column('next_check_at', sa.DateTime(), nullable=True),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('website_id'),
        sa.CheckConstraint(
            "frequency IN ('hourly', 'daily', 'weekly', 'biweekly', 'monthly', 'quarterly')",
            name='chk_monitoring_frequency_valid',
        ),
        sa.CheckConstraint('alert_threshold >= 0 AND alert_threshold <= 100', name='chk_alert_threshold_range'),
    )
    op.create_index('idx_monitoring_due', 'monitoring_configs', ['enabled', 'next_check_at'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('website_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False, server_default='info'),
        sa.Column('category', sa.String(length=50), nullable=False, server_default='general'),
        sa.Column('metric', sa.String(length=50), nullable=True),
        sa.Column('value', sa.Float(), nullable=True),
        sa.Column('threshold', sa.Float(), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("severity IN ('info', 'warning', 'error', 'critical')", name='chk_alert_severity_valid'),
    )
    op.create_index('idx_alerts_website_read', 'alerts', ['website_id', 'read'])
    op.create_index('idx_alerts_created_at', 'alerts', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('website_id', sa.Uuid(), nullable=True),
        sa.Column('audit_id', sa.Uuid(), nullable=True),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('channel', sa.String(length=20), nullable=False, server_default='in_app'),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['audit_id'], ['audits.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "type IN ('audit_completed', 'score_alert', 'score_drop', 'category_drop', "
            "'critical_issue', 'monitoring_alert', 'performance_degradation', 'system')",
            name='chk_notification_type_valid',
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent', 'critical')",
            name='chk_notification_priority_valid',
        ),
        sa.CheckConstraint("channel IN ('in_app', 'email', 'webhook')", name='chk_notification_channel_valid'),
    )
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'read'])
    op.create_index('idx_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'notification_preferences',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('min_score_threshold', sa.Float(), nullable=False, server_default='70'),
        sa.Column('min_score_drop', sa.Float(), nullable=False, server_default='5'),
        sa.Column('email_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('realtime_alerts', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'webhook_configurations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('secret', sa.String(), nullable=True),
        sa.Column('events', sa.JSON(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('length(trim(url)) > 0', name='chk_webhook_url_not_empty'),
    )
    op.create_index('idx_webhooks_user_active', 'webhook_configurations', ['user_id', 'active'])

    op.create_table(
        'webhook_deliveries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('webhook_id', sa.Uuid(), nullable=False),
        sa.Column('event', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status_code', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('response', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['webhook_id'], ['webhook_configurations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_webhook_deliveries_webhook_id', 'webhook_deliveries', ['webhook_id'])

    op.create_table(
        'system_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('length(trim(event_type)) > 0', name='chk_event_type_not_empty'),
        sa.CheckConstraint('length(trim(entity_type)) > 0', name='chk_entity_type_not_empty'),
    )
    op.create_index('idx_system_events_entity', 'system_events', ['entity_type', 'entity_id'])
    op.create_index('idx_system_events_created_at', 'system_events', ['created_at'])
    op.create_index('idx_system_events_type', 'system_events', ['event_type'])


def downgrade() -> None:
    for table in (
        'system_events',
        'webhook_deliveries',
        'webhook_configurations',
        'notification_preferences',
        'notifications',
        'alerts',
        'monitoring_configs',
        'audits',
        'audit_schedules',
        'websites',
        'users',
    ):
        op.drop_table(table)
