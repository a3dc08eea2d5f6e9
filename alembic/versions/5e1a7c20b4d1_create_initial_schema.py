"""create initial schema for stations, observations, forecasts and corrections

Revision ID: 5e1a7c20b4d1
Revises: 
Create Date: 2026-10-19 08:12:44.118204+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1a7c20b4d1'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Create stations table
    op.create_table(
        'stations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('elevation', sa.Float(), nullable=True),
        sa.Column('elevation_tier', sa.String(length=20), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_stations_id'), 'stations', ['id'], unique=False)
    op.create_index(op.f('ix_stations_code'), 'stations', ['code'], unique=True)
    op.create_index(op.f('ix_stations_elevation_tier'), 'stations', ['elevation_tier'], unique=False)
    op.create_index('idx_station_tier_active', 'stations', ['elevation_tier', 'active'], unique=False)

    # Create observations table
    op.create_table(
        'observations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('observed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('humidity', sa.Integer(), nullable=True),
        sa.Column('dewpoint', sa.Float(), nullable=True),
        sa.Column('pressure', sa.Float(), nullable=True),
        sa.Column('wind_speed', sa.Float(), nullable=True),
        sa.Column('wind_gust', sa.Float(), nullable=True),
        sa.Column('wind_direction', sa.Integer(), nullable=True),
        sa.Column('precip_rate', sa.Float(), nullable=True),
        sa.Column('precip_total', sa.Float(), nullable=True),
        sa.Column('solar_radiation', sa.Float(), nullable=True),
        sa.Column('uv', sa.Float(), nullable=True),
        sa.Column('heat_index', sa.Float(), nullable=True),
        sa.Column('wind_chill', sa.Float(), nullable=True),
        sa.Column('obs_type', sa.String(length=20), nullable=False),
        sa.Column('aggregation_period', sa.Integer(), nullable=True),
        sa.Column('qc_status', sa.Integer(), nullable=False),
        sa.Column('quality_flags', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', 'observed_at', name='uq_observation_station_time')
    )
    op.create_index(op.f('ix_observations_id'), 'observations', ['id'], unique=False)
    op.create_index(op.f('ix_observations_station_id'), 'observations', ['station_id'], unique=False)
    op.create_index(op.f('ix_observations_observed_at'), 'observations', ['observed_at'], unique=False)
    op.create_index('idx_observation_station_time', 'observations', ['station_id', 'observed_at'], unique=False)

    # Create forecasts table
    op.create_table(
        'forecasts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('source', sa.String(length=10), nullable=False),
        sa.Column('fetched_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('valid_date', sa.Date(), nullable=False),
        sa.Column('day_of_forecast', sa.Integer(), nullable=False),
        sa.Column('temp_max', sa.Float(), nullable=True),
        sa.Column('temp_min', sa.Float(), nullable=True),
        sa.Column('humidity', sa.Integer(), nullable=True),
        sa.Column('precip_chance', sa.Integer(), nullable=True),
        sa.Column('precip_amount', sa.Float(), nullable=True),
        sa.Column('precip_range', sa.String(length=30), nullable=True),
        sa.Column('wind_speed', sa.Float(), nullable=True),
        sa.Column('wind_direction', sa.String(length=10), nullable=True),
        sa.Column('narrative', sa.Text(), nullable=True),
        sa.Column('location_id', sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source', 'fetched_at', 'valid_date', name='uq_forecast_source_fetch_date')
    )
    op.create_index(op.f('ix_forecasts_id'), 'forecasts', ['id'], unique=False)
    op.create_index(op.f('ix_forecasts_source'), 'forecasts', ['source'], unique=False)
    op.create_index(op.f('ix_forecasts_valid_date'), 'forecasts', ['valid_date'], unique=False)
    op.create_index('idx_forecast_valid_source', 'forecasts', ['valid_date', 'source'], unique=False)

    # Create daily_summaries table
    op.create_table(
        'daily_summaries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('temp_max', sa.Float(), nullable=True),
        sa.Column('temp_max_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('temp_min', sa.Float(), nullable=True),
        sa.Column('temp_min_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('temp_avg', sa.Float(), nullable=True),
        sa.Column('diurnal_range', sa.Float(), nullable=True),
        sa.Column('humidity_avg', sa.Float(), nullable=True),
        sa.Column('pressure_avg', sa.Float(), nullable=True),
        sa.Column('precip_total', sa.Float(), nullable=True),
        sa.Column('wind_max_gust', sa.Float(), nullable=True),
        sa.Column('dewpoint_avg', sa.Float(), nullable=True),
        sa.Column('wind_mean_night', sa.Float(), nullable=True),
        sa.Column('calm_fraction_night', sa.Float(), nullable=True),
        sa.Column('solar_integral', sa.Float(), nullable=True),
        sa.Column('solar_max', sa.Float(), nullable=True),
        sa.Column('inversion_detected', sa.Boolean(), nullable=True),
        sa.Column('inversion_strength', sa.Float(), nullable=True),
        sa.Column('regime_heatwave', sa.Boolean(), nullable=True),
        sa.Column('regime_inversion', sa.Boolean(), nullable=True),
        sa.Column('regime_clear_calm', sa.Boolean(), nullable=True),
        sa.Column('regime', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', 'date', name='uq_daily_summary_station_date')
    )
    op.create_index(op.f('ix_daily_summaries_id'), 'daily_summaries', ['id'], unique=False)
    op.create_index(op.f('ix_daily_summaries_station_id'), 'daily_summaries', ['station_id'], unique=False)
    op.create_index(op.f('ix_daily_summaries_date'), 'daily_summaries', ['date'], unique=False)
    op.create_index('idx_daily_summary_date_station', 'daily_summaries', ['date', 'station_id'], unique=False)

    # Create forecast_verification table
    op.create_table(
        'forecast_verification',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('forecast_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=10), nullable=False),
        sa.Column('day_of_forecast', sa.Integer(), nullable=False),
        sa.Column('valid_date', sa.Date(), nullable=False),
        sa.Column('forecast_temp_max', sa.Float(), nullable=True),
        sa.Column('forecast_temp_min', sa.Float(), nullable=True),
        sa.Column('actual_temp_max', sa.Float(), nullable=True),
        sa.Column('actual_temp_min', sa.Float(), nullable=True),
        sa.Column('bias_temp_max', sa.Float(), nullable=True),
        sa.Column('bias_temp_min', sa.Float(), nullable=True),
        sa.Column('forecast_wind_speed', sa.Float(), nullable=True),
        sa.Column('actual_wind_gust', sa.Float(), nullable=True),
        sa.Column('bias_wind', sa.Float(), nullable=True),
        sa.Column('forecast_precip', sa.Float(), nullable=True),
        sa.Column('actual_precip', sa.Float(), nullable=True),
        sa.Column('bias_precip', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['forecast_id'], ['forecasts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source', 'valid_date', name='uq_verification_source_date')
    )
    op.create_index(op.f('ix_forecast_verification_id'), 'forecast_verification', ['id'], unique=False)
    op.create_index(op.f('ix_forecast_verification_forecast_id'), 'forecast_verification', ['forecast_id'], unique=False)
    op.create_index(op.f('ix_forecast_verification_valid_date'), 'forecast_verification', ['valid_date'], unique=False)

    # Create forecast_correction_stats table (the bias store)
    op.create_table(
        'forecast_correction_stats',
        sa.Column('source', sa.String(length=10), nullable=False),
        sa.Column('target', sa.String(length=10), nullable=False),
        sa.Column('day_of_forecast', sa.Integer(), nullable=False),
        sa.Column('regime', sa.String(length=20), nullable=False),
        sa.Column('window_days', sa.Integer(), nullable=False),
        sa.Column('sample_size', sa.Integer(), nullable=False),
        sa.Column('mean_bias', sa.Float(), nullable=False),
        sa.Column('mae', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('source', 'target', 'day_of_forecast', 'regime')
    )

    # Create displayed_forecasts table (provenance log)
    op.create_table(
        'displayed_forecasts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('displayed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('valid_date', sa.Date(), nullable=False),
        sa.Column('day_of_forecast', sa.Integer(), nullable=False),
        sa.Column('wu_forecast_id', sa.Integer(), nullable=True),
        sa.Column('bom_forecast_id', sa.Integer(), nullable=True),
        sa.Column('source_max', sa.String(length=10), nullable=True),
        sa.Column('raw_temp_max', sa.Float(), nullable=True),
        sa.Column('bias_applied_max', sa.Float(), nullable=True),
        sa.Column('bias_day_used_max', sa.Integer(), nullable=True),
        sa.Column('bias_samples_max', sa.Integer(), nullable=True),
        sa.Column('bias_fallback_max', sa.Boolean(), nullable=True),
        sa.Column('bias_rejected_max', sa.Boolean(), nullable=True),
        sa.Column('temp_max_pre_nowcast', sa.Float(), nullable=True),
        sa.Column('nowcast_applied', sa.Boolean(), nullable=False),
        sa.Column('nowcast_adjustment', sa.Float(), nullable=True),
        sa.Column('corrected_temp_max', sa.Float(), nullable=True),
        sa.Column('source_min', sa.String(length=10), nullable=True),
        sa.Column('raw_temp_min', sa.Float(), nullable=True),
        sa.Column('bias_applied_min', sa.Float(), nullable=True),
        sa.Column('bias_day_used_min', sa.Integer(), nullable=True),
        sa.Column('bias_samples_min', sa.Integer(), nullable=True),
        sa.Column('bias_fallback_min', sa.Boolean(), nullable=True),
        sa.Column('corrected_temp_min', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['wu_forecast_id'], ['forecasts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['bom_forecast_id'], ['forecasts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('valid_date', 'day_of_forecast', name='uq_displayed_forecast_date_day')
    )
    op.create_index(op.f('ix_displayed_forecasts_id'), 'displayed_forecasts', ['id'], unique=False)
    op.create_index(op.f('ix_displayed_forecasts_valid_date'), 'displayed_forecasts', ['valid_date'], unique=False)

    # Create nowcast_log table
    op.create_table(
        'nowcast_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('observed_morning', sa.Float(), nullable=True),
        sa.Column('forecast_morning', sa.Float(), nullable=True),
        sa.Column('delta', sa.Float(), nullable=True),
        sa.Column('adjustment', sa.Float(), nullable=True),
        sa.Column('forecast_max_raw', sa.Float(), nullable=True),
        sa.Column('forecast_max_corrected', sa.Float(), nullable=True),
        sa.Column('actual_max', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'station_id', name='uq_nowcast_log_date_station')
    )
    op.create_index(op.f('ix_nowcast_log_id'), 'nowcast_log', ['id'], unique=False)
    op.create_index(op.f('ix_nowcast_log_date'), 'nowcast_log', ['date'], unique=False)


def downgrade() -> None:
    op.drop_table('nowcast_log')
    op.drop_table('displayed_forecasts')
    op.drop_table('forecast_correction_stats')
    op.drop_table('forecast_verification')
    op.drop_table('daily_summaries')
    op.drop_table('forecasts')
    op.drop_table('observations')
    op.drop_table('stations')
