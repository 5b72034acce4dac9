import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Float, Table, CheckConstraint
from sqlalchemy.orm import relationship

from evcharge.database import Base
from evcharge.utils import utcnow

def new_id() -> str:
    return str(uuid.uuid4())

# ================================
# Station <-> Operator assignment
# ================================
station_operators = Table(
    "station_operators",
    Base.metadata,
    Column("station_id", String(64), ForeignKey("stations.station_id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    stations = relationship("Station", secondary=station_operators, back_populates="operators")

# ================================
# EV Owners
# ================================
class EVOwner(Base):
    __tablename__ = "ev_owners"

    nic = Column(String(20), primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30))
    is_active = Column(Boolean, nullable=False, default=True)
    created_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="owner")

# ================================
# Charging Stations
# ================================
class Station(Base):
    __tablename__ = "stations"
    __table_args__ = (
        CheckConstraint("available_slots >= 0", name="ck_stations_available_slots"),
        CheckConstraint("type IN ('AC', 'DC')", name="ck_stations_type"),
    )

    station_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(Text)
    type = Column(String(2), nullable=False)
    available_slots = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    operators = relationship("User", secondary=station_operators, back_populates="stations")
    bookings = relationship("Booking", back_populates="station")

    @property
    def operator_user_ids(self):
        return sorted(user.id for user in self.operators)

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_nic = Column(String(20), ForeignKey("ev_owners.nic"), nullable=False, index=True)
    station_id = Column(String(64), ForeignKey("stations.station_id"), nullable=False, index=True)
    start_time_utc = Column(DateTime(timezone=True), nullable=False)
    end_time_utc = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    qr_code = Column(String(128))
    rejection_reason = Column(Text)
    created_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    owner = relationship("EVOwner", back_populates="bookings")
    station = relationship("Station", back_populates="bookings")
