"""Paste ORM model."""

from sqlalchemy import Column, DateTime, Integer, String, Text

from database import Base


class PasteModel(Base):
    __tablename__ = "pastes"

    id = Column(String(32), primary_key=True)
    content = Column(Text, nullable=False)
    language = Column(String(50), nullable=False)
    title = Column(String(255), nullable=True)
    views = Column(Integer, nullable=False, default=0)
    max_views = Column(Integer, nullable=False, default=-1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
