import uuid
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from aisentinel.db.base import Base


class Company(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    domain = Column(String, unique=True)  # email domain used for roster matching
    primary_admin_name = Column(String)
    primary_admin_email = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="company")
    employees = relationship(
        "CompanyEmployee",
        back_populates="company",
        cascade="all, delete-orphan"
    )

"""
Table companies {
  id serial [pk]
  name varchar [not null, unique]
  domain varchar [unique]
  primary_admin_name varchar
  primary_admin_email varchar
  is_active boolean [default: true]
  created_at timestamp
  updated_at timestamp
}
"""


class CompanyEmployee(Base):
    __tablename__ = "company_employees"
    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False
    )
    email = Column(String, nullable=False, index=True)
    role = Column(String, default="employee")  # employee, admin, owner
    is_active = Column(Boolean, default=True)
    added_at = Column(DateTime, server_default=func.now())

    company = relationship("Company", back_populates="employees")


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex[:12])
    email = Column(String, unique=True, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    role = Column(String, default="demo", nullable=False)
    role_level = Column(Integer, default=0, nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"))
    is_active = Column(Boolean, default=True)
    email_verified = Column(Boolean, default=False)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    company = relationship("Company", back_populates="users")
    sessions = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan"
    )

"""
Table users {
  id varchar [pk]
  email varchar [unique]
  role varchar // demo, user, admin, administrator, owner, super-user
  role_level int // 0 demo, 1 user, 998 administrator, 999 owner, 1000 super-user
  company_id int
}
"""


class UserSession(Base):
    __tablename__ = "user_sessions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    session_token = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"))
    role_level = Column(Integer, default=1)
    expires_at = Column(DateTime, nullable=False)
    last_accessed_at = Column(DateTime, server_default=func.now())
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("idx_user_session", "user_id"),
    )
