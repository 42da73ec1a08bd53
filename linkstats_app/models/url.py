import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from linkstats_app.database.connection import Base


class Topic(str, enum.Enum):
    """Categorical label used to group mappings for reporting"""
    ACQUISITION = "acquisition"
    ACTIVATION = "activation"
    RETENTION = "retention"


class UrlMapping(Base):
    """
    Alias -> destination mapping (transactional data).

    Visit events live in the separate analytics store; only the
    aggregate click counter is kept here for quick totals.
    """
    __tablename__ = "url_mappings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # unique=True also creates the index used by every redirect cache miss
    alias = Column(String(64), unique=True, nullable=False, index=True)
    long_url = Column(String, nullable=False)
    topic = Column(
        Enum(Topic, values_callable=lambda members: [m.value for m in members], native_enum=False),
        nullable=False,
        default=Topic.ACQUISITION
    )
    owner_id = Column(String(128), nullable=False, index=True)
    # Only ever changed by the visit recorder, via an atomic UPDATE
    clicks = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
