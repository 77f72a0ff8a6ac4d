"""Persistence layer for loan payment overrides.

Amortization schedules are recomputed on every request; the only part that is
stored is the sparse map of user corrections per loan and payment number.
The store defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from finance_calc.config import DATABASE_URL
from finance_calc.data_models import PaymentOverride

Base = declarative_base()


class PaymentOverrideModel(Base):
    __tablename__ = "loan_payment_overrides"
    __table_args__ = (UniqueConstraint("user_token", "account_id", "payment_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_token = Column(String(64), index=True, nullable=False)
    account_id = Column(String(64), nullable=False)
    payment_number = Column(Integer, nullable=False)
    total_payment = Column(String(32), nullable=True)
    principal = Column(String(32), nullable=True)
    interest = Column(String(32), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# Amounts are stored as decimal strings so they round-trip exactly
def _text(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _decimal(value) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


class OverrideStore:
    """Database-backed store of per-loan payment overrides."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def get_overrides(self, user_token: str, account_id: str) -> Dict[int, PaymentOverride]:
        if not user_token:
            return {}
        with self._session_factory() as session:
            rows: Iterable[PaymentOverrideModel] = session.execute(
                select(PaymentOverrideModel)
                .where(PaymentOverrideModel.user_token == user_token)
                .where(PaymentOverrideModel.account_id == account_id)
                .order_by(PaymentOverrideModel.payment_number.asc())
            ).scalars()
            return {row.payment_number: self._to_override(row) for row in rows}

    def set_override(self, user_token: str, account_id: str, payment_number: int, override: PaymentOverride) -> None:
        """Insert or replace the override of one period.

        An override with no fields set removes the stored row instead.
        """
        if not user_token:
            return
        if override.is_empty():
            self.remove_override(user_token, account_id, payment_number)
            return
        with self._session_factory() as session:
            row = self._find(session, user_token, account_id, payment_number)
            if row is None:
                row = PaymentOverrideModel(
                    user_token=user_token, account_id=account_id, payment_number=payment_number
                )
                session.add(row)
            row.total_payment = _text(override.total_payment)
            row.principal = _text(override.principal)
            row.interest = _text(override.interest)
            session.commit()

    def remove_override(self, user_token: str, account_id: str, payment_number: int) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = self._find(session, user_token, account_id, payment_number)
            if row is not None:
                session.delete(row)
                session.commit()

    def clear_overrides(self, user_token: str, account_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                PaymentOverrideModel.__table__.delete()
                .where(PaymentOverrideModel.user_token == user_token)
                .where(PaymentOverrideModel.account_id == account_id)
            )
            session.commit()

    @staticmethod
    def _find(session, user_token: str, account_id: str, payment_number: int) -> Optional[PaymentOverrideModel]:
        return session.execute(
            select(PaymentOverrideModel)
            .where(PaymentOverrideModel.user_token == user_token)
            .where(PaymentOverrideModel.account_id == account_id)
            .where(PaymentOverrideModel.payment_number == payment_number)
        ).scalar_one_or_none()

    @staticmethod
    def _to_override(row: PaymentOverrideModel) -> PaymentOverride:
        return PaymentOverride(
            total_payment=_decimal(row.total_payment),
            principal=_decimal(row.principal),
            interest=_decimal(row.interest),
        )


def create_store_from_env(url: str | None) -> OverrideStore:
    return OverrideStore(url or DATABASE_URL)
