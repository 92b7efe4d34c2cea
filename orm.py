from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db import Base

LOG_SCHEMA_VERSION = 1


class ComponentORM(Base):
    __tablename__ = "components"
    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="ck_components_total_nonneg"),
        CheckConstraint("available_quantity >= 0", name="ck_components_available_nonneg"),
        CheckConstraint(
            "available_quantity <= total_quantity", name="ck_components_available_le_total"
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # category display name; categories are referenced by name, not id
    category: Mapped[str] = mapped_column(String, nullable=False, index=True)

    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    condition: Mapped[str] = mapped_column(String, nullable=False, default="Good")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_hint: Mapped[str] = mapped_column(String, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class CategoryORM(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class TransactionLogORM(Base):
    __tablename__ = "logs"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_logs_quantity_positive"),
        CheckConstraint("status IN ('Borrowed', 'Returned')", name="ck_logs_status"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)

    # no FK: history outlives the component, hence the denormalized name
    component_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    component_name: Mapped[str] = mapped_column(String, nullable=False)

    user_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    contact_number: Mapped[str | None] = mapped_column(String, nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True)

    issue_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    return_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    expected_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # set on Returned rows only; unique so a borrow can be closed once
    borrow_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)

    schema_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=LOG_SCHEMA_VERSION
    )


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="admin")
    avatar: Mapped[str] = mapped_column(String, nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
