# alembic/versions/0001_initial.py
# initial tables; keep in step with carrental/db/models.py
from alembic import op
import sqlalchemy as sa

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table('cars',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('make', sa.String(length=100), nullable=False, index=True),
        sa.Column('model', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(length=50), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, index=True),
        sa.Column('transmission', sa.String(length=20), nullable=False),
        sa.Column('fuel_type', sa.String(length=20), nullable=False),
        sa.Column('seats', sa.Integer(), nullable=False),
        sa.Column('doors', sa.Integer(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('license_plate', sa.String(length=20), nullable=False, unique=True),
        sa.Column('mileage', sa.Integer(), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False, index=True),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('country', sa.String(length=100), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(10, 2), nullable=False),
        sa.Column('daily_rate', sa.Numeric(10, 2), nullable=False, index=True),
        sa.Column('weekly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('monthly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, index=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('rating_average', sa.Float(), nullable=False),
        sa.Column('rating_count', sa.Integer(), nullable=False),
        sa.Column('total_bookings', sa.Integer(), nullable=False),
        sa.Column('booking_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("category IN ('economy', 'compact', 'midsize', 'fullsize', 'luxury', 'suv', 'van', 'convertible', 'sports')", name='ck_car_category'),
        sa.CheckConstraint("status IN ('active', 'inactive', 'maintenance', 'rented')", name='ck_car_status'),
        sa.CheckConstraint("currency IN ('USD', 'EUR', 'INR')", name='ck_car_currency'),
        sa.CheckConstraint('hourly_rate >= 0 AND daily_rate >= 0', name='ck_car_rates'),
        sa.CheckConstraint('rating_count >= 0', name='ck_car_rating_count'),
    )
    op.create_table('car_unavailable_periods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('car_id', sa.Integer(), sa.ForeignKey('cars.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("kind IN ('blackout', 'maintenance')", name='ck_period_kind'),
        sa.CheckConstraint('end_date >= start_date', name='ck_period_dates'),
    )
    op.create_table('bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('car_id', sa.Integer(), sa.ForeignKey('cars.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('duration_hours', sa.Integer(), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('pickup_location', sa.JSON(), nullable=False),
        sa.Column('dropoff_location', sa.JSON(), nullable=False),
        sa.Column('driver_details', sa.JSON(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('special_requests', sa.String(length=500), nullable=True),
        sa.Column('insurance_type', sa.String(length=20), nullable=False),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('insurance_cost', sa.Numeric(10, 2), nullable=False),
        sa.Column('taxes', sa.Numeric(10, 2), nullable=False),
        sa.Column('fees', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, index=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('start_record', sa.JSON(), nullable=True),
        sa.Column('completion', sa.JSON(), nullable=True),
        sa.Column('cancellation', sa.JSON(), nullable=True),
        sa.Column('rating', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'confirmed', 'active', 'completed', 'cancelled', 'no-show')", name='ck_booking_status'),
        sa.CheckConstraint("payment_status IN ('unpaid', 'paid', 'refunded', 'partially-refunded')", name='ck_booking_payment_status'),
        sa.CheckConstraint('end_date >= start_date', name='ck_booking_dates'),
        sa.CheckConstraint('duration_hours >= 1 AND duration_hours <= 720', name='ck_booking_duration'),
        sa.CheckConstraint('total_price >= 0', name='ck_booking_total'),
        sa.CheckConstraint("(status = 'cancelled') = (cancellation IS NOT NULL)", name='ck_booking_cancellation_state'),
        sa.CheckConstraint("(status = 'completed') = (completion IS NOT NULL)", name='ck_booking_completion_state'),
        sa.CheckConstraint("(status IN ('active', 'completed')) = (start_record IS NOT NULL)", name='ck_booking_start_state'),
        sa.CheckConstraint("rating IS NULL OR status = 'completed'", name='ck_booking_rating_state'),
    )
    op.create_index('ix_bookings_car_dates', 'bookings', ['car_id', 'start_date', 'end_date'])
    op.create_index('ix_bookings_user_status', 'bookings', ['user_id', 'status'])

def downgrade():
    op.drop_index('ix_bookings_user_status', table_name='bookings')
    op.drop_index('ix_bookings_car_dates', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('car_unavailable_periods')
    op.drop_table('cars')
    op.drop_table('users')
