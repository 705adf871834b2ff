"""Database models for the employee roster and its change log."""

from datetime import datetime
from sqlalchemy import Column, Date, DateTime, Enum, Integer, String, Text
import enum

from roster_backup.db.database import Base


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    RESIGNED = "RESIGNED"


class ChangeType(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class Employee(Base):
    """An employee on the roster. Rows are exported to the backup CSV."""
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_number = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    email = Column(String(200), nullable=False, unique=True)
    department = Column(String(100), nullable=True)
    position = Column(String(100), nullable=True)
    hire_date = Column(Date, nullable=False)
    status = Column(Enum(EmployeeStatus, native_enum=False, length=20), nullable=False, default=EmployeeStatus.ACTIVE)

    def __repr__(self):
        return f"<Employee(id={self.id}, number={self.employee_number}, name={self.name})>"


class EmployeeChangeLog(Base):
    """
    One entry per change to an employee record.

    Used as the change feed: a backup is needed when any entry is newer
    than the last completed backup.
    """
    __tablename__ = "employee_change_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(ChangeType, native_enum=False, length=20), nullable=False)
    employee_number = Column(String(50), nullable=False)
    memo = Column(Text, nullable=True)
    ip_address = Column(String(100), nullable=True)
    at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<EmployeeChangeLog(id={self.id}, type={self.type}, employee={self.employee_number})>"
