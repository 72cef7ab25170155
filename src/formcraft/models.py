from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    password_hash = Column(String)
    created_at = Column(DateTime)


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    user_id = Column(String, index=True)
    title = Column(String)
    description = Column(Text)
    purpose = Column(Text)
    fields_json = Column(Text)
    publish_status = Column(String, default="draft")
    # NULL for never-published forms, so the unique index only binds real tokens
    shareable_url = Column(String, unique=True, index=True, nullable=True)
    prevent_duplicates = Column(Integer, default=0)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class ResponseModel(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    data_json = Column(Text)
    submitted_at = Column(DateTime, index=True)


class FileModel(Base):
    __tablename__ = "files"

    id = Column(String, primary_key=True)
    original_name = Column(String)
    stored_path = Column(Text)
    content_type = Column(String)
    size = Column(Integer)
    created_at = Column(DateTime)
