# models.py
import databases
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

from config import DATABASE_URL

Base = declarative_base()
metadata = Base.metadata

# Async handle used by the notes routes
database = databases.Database(DATABASE_URL)


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


notes = Note.__table__
