"""SQLAlchemy ORM models -- tables and their rows."""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Tables (one per scope, plus the players table)
# ---------------------------------------------------------------------------

class TableModel(Base):
    __tablename__ = "leaderboard_tables"

    name = Column(String(200), primary_key=True)
    header = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    rows = relationship(
        "RowModel", back_populates="table", lazy="select",
        order_by="RowModel.id", cascade="all, delete-orphan",
    )


# ---------------------------------------------------------------------------
# Rows -- storage order is the autoincrement id
# ---------------------------------------------------------------------------

class RowModel(Base):
    __tablename__ = "leaderboard_rows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(
        String(200), ForeignKey("leaderboard_tables.name"), nullable=False, index=True,
    )
    cells = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    table = relationship("TableModel", back_populates="rows")
