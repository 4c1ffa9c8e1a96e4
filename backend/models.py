from sqlalchemy import Column, String, Integer, Float, Text, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import uuid
from database import Base
from utils.time_helper import utc_now


def generate_uuid():
    return str(uuid.uuid4())


class Beer(Base):
    __tablename__ = 'beers'

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default='')
    info = Column(Text)            # Description ("A pilsner ...")
    type = Column(String)          # Style ("Lager / Pilsner")
    country = Column(String)
    image_name = Column(String)    # Name of image in resources
    abv = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=utc_now)

    kegs = relationship("Keg", back_populates="beer")
    ratings = relationship("Rating", back_populates="beer")

    __table_args__ = (
        CheckConstraint("id != ''"),
        CheckConstraint("abv >= 0"),
    )

    def __repr__(self) -> str:
        return f"<Beer {self.id!r} {self.name!r}>"


class Keg(Base):
    """
    A physical keg of beer, optionally mounted at a dispensing position.

    Volumes are in liters. ``volume_adjusted`` is subtracted from the total
    alongside the pour log to determine what is left:

        remaining = volume_total - volume_adjusted - sum(pour amounts)

    Remaining volume is derived on read and never stored.
    """
    __tablename__ = 'kegs'

    id = Column(String, primary_key=True, default=generate_uuid)
    position = Column(Integer, nullable=True)  # Tap slot index; NULL when not mounted
    beer_id = Column(String, ForeignKey('beers.id'), nullable=True)
    volume_adjusted = Column(Float, nullable=False, default=0.0)
    volume_total = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=utc_now)

    beer = relationship("Beer", back_populates="kegs")
    pours = relationship("KegPour", back_populates="keg", order_by="KegPour.created_at")
    temperatures = relationship("KegTemperature", back_populates="keg", order_by="KegTemperature.created_at")

    @property
    def volume_poured(self) -> float:
        """Total liters poured from this keg."""
        return sum(pour.amount for pour in self.pours)

    @property
    def volume_remaining(self) -> float:
        """Liters left, not clamped at zero."""
        return (self.volume_total or 0.0) - (self.volume_adjusted or 0.0) - self.volume_poured

    __table_args__ = (
        UniqueConstraint('position', name='uq_keg_position'),
        Index('idx_kegs_beer', 'beer_id'),
    )

    def __repr__(self) -> str:
        return f"<Keg {self.id!r} position={self.position}>"


class User(Base):
    __tablename__ = 'users'

    rfid = Column(String, primary_key=True)
    display_name = Column(String)
    volume_poured = Column(Float, nullable=False, default=0.0)  # Cache of sum(pours.amount)
    created_at = Column(DateTime, default=utc_now)

    pours = relationship("KegPour", back_populates="user")
    ratings = relationship("Rating", back_populates="user")

    __table_args__ = (
        CheckConstraint("rfid != ''"),
        Index('idx_users_volume_poured', 'volume_poured'),
    )

    def __repr__(self) -> str:
        return f"<User {self.rfid!r} {self.display_name!r}>"


class KegPour(Base):
    __tablename__ = 'keg_pours'

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount = Column(Float, nullable=False)  # Liters
    created_at = Column(DateTime, nullable=False, default=utc_now)
    keg_id = Column(String, ForeignKey('kegs.id'), nullable=False)
    user_rfid = Column(String, ForeignKey('users.rfid'), nullable=True)  # NULL for anonymous pours

    keg = relationship("Keg", back_populates="pours")
    user = relationship("User", back_populates="pours")

    __table_args__ = (
        CheckConstraint("amount > 0"),
        Index('idx_pours_created', 'created_at'),
        Index('idx_pours_user_created', 'user_rfid', 'created_at'),
        Index('idx_pours_keg', 'keg_id'),
    )

    def __repr__(self) -> str:
        return f"<KegPour {self.amount}L keg={self.keg_id!r} user={self.user_rfid!r}>"


class KegTemperature(Base):
    __tablename__ = 'keg_temperatures'

    id = Column(Integer, primary_key=True, autoincrement=True)
    temperature = Column(Float, nullable=False)  # Celsius
    created_at = Column(DateTime, nullable=False, default=utc_now)
    keg_id = Column(String, ForeignKey('kegs.id'), nullable=False)

    keg = relationship("Keg", back_populates="temperatures")

    __table_args__ = (
        Index('idx_temperatures_keg_created', 'keg_id', 'created_at'),
    )


class Rating(Base):
    __tablename__ = 'ratings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Integer, nullable=False)
    user_rfid = Column(String, ForeignKey('users.rfid'), nullable=False)
    beer_id = Column(String, ForeignKey('beers.id'), nullable=True)
    created_at = Column(DateTime, default=utc_now)

    user = relationship("User", back_populates="ratings")
    beer = relationship("Beer", back_populates="ratings")
