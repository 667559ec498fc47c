from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class TenantModel(Base):
    __tablename__ = "tenants"

    id = Column(String, primary_key=True)
    username = Column(String, unique=True, index=True)
    password_hash = Column(String)
    company_name = Column(String)
    logo_path = Column(Text, nullable=True)
    created_at = Column(DateTime)


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    owner_tenant_id = Column(String, index=True)
    title = Column(String)
    fields_json = Column(Text)
    template = Column(String, default="default")
    allow_file = Column(Boolean, default=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class SubmissionModel(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    data_json = Column(Text)
    file_path = Column(Text, nullable=True)
    submitted_at = Column(DateTime)


class FileModel(Base):
    __tablename__ = "files"

    id = Column(String, primary_key=True)
    stored_name = Column(String, unique=True, index=True)
    form_id = Column(String, index=True, nullable=True)
    original_name = Column(String)
    stored_path = Column(Text)
    content_type = Column(String)
    size = Column(Integer)
    created_at = Column(DateTime)
