from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	pass


class BookingDB(Base):
	__tablename__ = 'bookings'

	id: Mapped[str] = mapped_column(String(36), primary_key=True)
	booking_reference: Mapped[str | None] = mapped_column(String(50), nullable=True)
	status: Mapped[str] = mapped_column(String(30), nullable=False)
	currency: Mapped[str] = mapped_column(String(5), nullable=False, default='USD')
	amount_paid: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	total_amount: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
	end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
	created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
	assigned_vehicle_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
	client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)


class VehicleDB(Base):
	__tablename__ = 'vehicles'

	id: Mapped[str] = mapped_column(String(36), primary_key=True)
	license_plate: Mapped[str] = mapped_column(String(20), nullable=False, default='')
	make: Mapped[str] = mapped_column(String(50), nullable=False, default='')
	model: Mapped[str] = mapped_column(String(50), nullable=False, default='')
	capacity: Mapped[str] = mapped_column(String(30), nullable=False, default='')
	status: Mapped[str] = mapped_column(String(30), nullable=False)


class CashRequisitionDB(Base):
	__tablename__ = 'cash_requisitions'

	id: Mapped[str] = mapped_column(String(36), primary_key=True)
	cr_number: Mapped[str] = mapped_column(String(20), nullable=False, default='')
	status: Mapped[str] = mapped_column(String(30), nullable=False)
	currency: Mapped[str] = mapped_column(String(5), nullable=False, default='USD')
	total_cost: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	amount_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	expense_category: Mapped[str] = mapped_column(String(100), nullable=False, default='')
	created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
	completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
	is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FinancialTransactionDB(Base):
	__tablename__ = 'financial_transactions'

	id: Mapped[str] = mapped_column(String(36), primary_key=True)
	transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
	status: Mapped[str] = mapped_column(String(30), nullable=False, default='')
	currency: Mapped[str] = mapped_column(String(5), nullable=False, default='USD')
	amount: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	category: Mapped[str] = mapped_column(String(100), nullable=False, default='')
	description: Mapped[str] = mapped_column(Text, nullable=False, default='')
	reference_number: Mapped[str] = mapped_column(String(50), nullable=False, default='')
	transaction_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)


class SafariBookingDB(Base):
	__tablename__ = 'safari_bookings'

	id: Mapped[str] = mapped_column(String(36), primary_key=True)
	currency: Mapped[str] = mapped_column(String(5), nullable=False, default='USD')
	total_price: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	total_expenses: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	vehicle_hire_cost: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=18, scale=2), nullable=True)
	start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
	end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class ExchangeRateDB(Base):
	__tablename__ = 'exchange_rates'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	from_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	to_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=6), nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
	source: Mapped[str | None] = mapped_column(String(50), nullable=True)

	__table_args__ = (
		Index('idx_exchange_rates_pair', 'from_currency', 'to_currency'),
	)
