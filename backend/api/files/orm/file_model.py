"""File ORM model."""

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from database import Base


class FileModel(Base):
    __tablename__ = "files"

    id = Column(String(32), primary_key=True)
    original_name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    content_type = Column(String(255), nullable=False)
    storage_key = Column(String(100), unique=True, nullable=False)
    downloads = Column(Integer, nullable=False, default=0)
    max_downloads = Column(Integer, nullable=False, default=-1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
