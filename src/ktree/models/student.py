"""Student roster model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String

from ktree.db.base import Base, IdType


class Student(Base):
    """Student identity row; credentials live with the identity provider."""

    __tablename__ = "students"

    id = Column(IdType, primary_key=True, autoincrement=True)
    username = Column(String(80), unique=True, nullable=False)
    name = Column(String(80), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
