"""
Database models for drink likes
SQLAlchemy ORM model: one row per (drink, session) pair that is currently liked
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DrinkLike(Base):
    """
    DrinkLike entity - presence of a row means the session likes the drink
    Deleting the row is the transition back to "not liked"
    """
    __tablename__ = "drink_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    drink_id = Column(String, nullable=False, index=True)
    session_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Constraints
    __table_args__ = (
        UniqueConstraint("drink_id", "session_id", name="uix_drink_session"),
    )

    def __repr__(self):
        return f"<DrinkLike(drink_id='{self.drink_id}', session_id='{self.session_id}')>"
