"""
Data Store

The single facade over kegs, beers, users, pours and temperature readings.
It creates and looks up records, keeps cross-entity bookkeeping consistent
(user pour totals, keg positions) and answers the aggregate queries used by
the tap display: recent pours, leaderboard and pour rate.

All public operations are serialized on one re-entrant lock. Write operations
validate their input before touching storage and commit through ``save`` as
a single critical section, so a failure never leaves a half-applied pour
visible.

Usage:
    store = DataStore.open()
    beer = store.update_beer_with_id("stella", "Stella Artois", None, "Lager", "Belgium", None, 5.2)
    keg = store.add_keg_with_beer(beer)
    store.set_keg(keg, 0)
    user = store.add_or_update_user_with_rfid("04A2B1", "Gabe")
    store.add_keg_pour(0.35, keg, user)
"""

import math
import threading
from datetime import datetime
from functools import wraps
from typing import Callable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from config.store_config import get_database_url, is_sql_echo_enabled
from constants import POUR_RATE_WINDOW, DEFAULT_TEMPERATURE_LIMIT
from database import create_store_engine, init_schema
from dtos.request import BeerUpdateRequest, KegUpdateRequest, PageRequest, PourRequest, UserUpdateRequest
from dtos.response import KegStatusResponse, LeaderboardEntry
from exceptions import NotFoundError, ValidationError
from models import Beer, Keg, KegPour, KegTemperature, User
from repositories import (
    BeerRepository,
    KegRepository,
    PourRepository,
    TemperatureRepository,
    UserRepository,
)
from repositories.pour_specifications import PoursByKegSpec, pours_in_range_spec
from services.persistence_gateway import PersistenceGateway
from utils.logging_utils import StructuredLogger, log_operation
from utils.time_helper import utc_now

logger = StructuredLogger(__name__)

R = TypeVar('R', bound=BaseModel)


def synchronized(func):
    """Run a DataStore method while holding the store lock."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return func(self, *args, **kwargs)
    return wrapper


def _validate(request_cls: Type[R], **data) -> R:
    """Build a request DTO, translating pydantic errors into ValidationError."""
    try:
        return request_cls(**data)
    except PydanticValidationError as e:
        invalid_fields = {
            ".".join(str(part) for part in err["loc"]): err["msg"]
            for err in e.errors()
        }
        fields = ", ".join(invalid_fields) or request_cls.__name__
        raise ValidationError(f"Invalid {fields}", invalid_fields) from e


def _require_identifier(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} must not be empty", {field: "empty"})
    return value


def _require_position(position: int) -> int:
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError("Position must be an integer", {"position": repr(position)})
    return position


class DataStore:
    """
    Facade coordinating entity creation, lookup and aggregate queries.

    A store owns one persistence gateway; construct one per process and pass
    it to the code that needs it.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        clock: Callable[[], datetime] = utc_now,
        owns_engine: bool = False
    ):
        """
        Initialize the store.

        Args:
            gateway: Persistence gateway owning the session
            clock: Returns the current naive UTC time; used for every timestamp
            owns_engine: Dispose the gateway engine on close
        """
        self.gateway = gateway
        self.clock = clock
        self._owns_engine = owns_engine
        self._lock = threading.RLock()

        self.beers = BeerRepository(gateway)
        self.kegs = KegRepository(gateway)
        self.users = UserRepository(gateway)
        self.pours = PourRepository(gateway)
        self.temperatures = TemperatureRepository(gateway)

    @classmethod
    def open(cls, db_url: Optional[str] = None, clock: Callable[[], datetime] = utc_now) -> "DataStore":
        """
        Open a store, creating the schema if needed.

        Args:
            db_url: SQLAlchemy URL; defaults to the configured database file
            clock: Time source for timestamps

        Returns:
            Ready-to-use DataStore
        """
        url = db_url or get_database_url()
        engine = create_store_engine(url, echo=is_sql_echo_enabled())
        init_schema(engine)
        logger.info("Data store opened", extra={"db_url": url})
        return cls(PersistenceGateway(engine), clock=clock, owns_engine=True)

    def close(self) -> None:
        """Close the session, and the engine too when the store opened it."""
        with self._lock:
            self.gateway.close()
            if self._owns_engine:
                self.gateway.engine.dispose()

    def __enter__(self) -> "DataStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @synchronized
    def save(self) -> None:
        """
        Commit all pending mutations.

        Raises:
            StorageError: If the commit fails; the transaction is rolled back
        """
        self.gateway.save("save")

    # ------------------------------------------------------------------
    # Kegs
    # ------------------------------------------------------------------

    @synchronized
    @log_operation("set_keg")
    def set_keg(self, keg: Keg, position: int) -> None:
        """
        Mount a keg at a tap position.

        Whatever keg held the position before is unmounted (its position is
        cleared) but kept. A keg moved from another position leaves that one
        empty.

        Raises:
            ValidationError: If keg is missing or position is not an integer
        """
        if keg is None:
            raise ValidationError("Keg is required", {"keg": "missing"})
        _require_position(position)

        current = self.kegs.get_at_position(position)
        if current is keg:
            return
        if current is not None:
            current.position = None
            self.gateway.flush("set_keg")
        self.gateway.insert(keg)
        keg.position = position
        self.gateway.save("set_keg")

    @synchronized
    def keg_at_position(self, position: int) -> Optional[Keg]:
        """
        Keg mounted at a position, or None if the slot is empty.

        Raises:
            ValidationError: If position is not an integer
        """
        return self.kegs.get_at_position(_require_position(position))

    @synchronized
    @log_operation("add_keg_with_beer")
    def add_keg_with_beer(self, beer: Beer) -> Keg:
        """
        Create an unmounted keg of a beer with zeroed volume counters.

        An unsaved Beer passed in is saved along with the keg.

        Raises:
            ValidationError: If beer is missing or has an empty id
        """
        if beer is None:
            raise ValidationError("Beer is required", {"beer": "missing"})
        _require_identifier(beer.id, "beer_id")

        keg = Keg(beer=beer, volume_adjusted=0.0, volume_total=0.0, created_at=self.clock())
        self.kegs.create(keg)
        self.gateway.save("add_keg_with_beer")
        logger.info("Keg added", extra={"keg_id": keg.id, "beer_id": beer.id})
        return keg

    @synchronized
    def keg_with_id(self, id: str) -> Optional[Keg]:
        """Keg by identifier, or None if there is none."""
        _require_identifier(id, "keg_id")
        return self.kegs.get_by_id(id)

    @synchronized
    def kegs_with_offset(self, offset: int = 0, limit: Optional[int] = None) -> List[Keg]:
        """
        Page through kegs ordered by position, unmounted kegs last.

        Raises:
            ValidationError: If offset or limit is negative
        """
        page = _validate(PageRequest, offset=offset, limit=limit)
        return self.kegs.get_page_ordered(page.offset, page.limit)

    @synchronized
    @log_operation("add_or_update_keg_with_id")
    def add_or_update_keg_with_id(
        self,
        id: str,
        beer: Optional[Beer],
        volume_adjusted: float,
        volume_total: float
    ) -> Keg:
        """
        Create or overwrite a keg's beer and volume counters.

        Both volumes are absolute values replacing whatever was stored; the
        pour log is untouched.

        Args:
            id: Keg identifier
            beer: Beer on tap, None to clear
            volume_adjusted: Liters to subtract from the total on top of pours
            volume_total: Keg capacity in liters

        Returns:
            The created or updated keg

        Raises:
            ValidationError: If id is empty or a volume is invalid
        """
        request = _validate(
            KegUpdateRequest,
            id=id,
            volume_adjusted=volume_adjusted,
            volume_total=volume_total,
        )

        keg = self.kegs.get_by_id(request.id)
        if keg is None:
            keg = Keg(id=request.id, created_at=self.clock())
            self.gateway.insert(keg)
        keg.beer = beer
        keg.volume_adjusted = request.volume_adjusted
        keg.volume_total = request.volume_total
        self.gateway.save("add_or_update_keg_with_id")
        return keg

    @synchronized
    def keg_status(self, keg: Keg) -> KegStatusResponse:
        """
        Summarize a keg's volumes and latest temperature.

        Raises:
            ValidationError: If keg is missing
        """
        if keg is None:
            raise ValidationError("Keg is required", {"keg": "missing"})

        by_keg = PoursByKegSpec(keg.id)
        poured = self.pours.sum_amount(by_keg)
        latest = self.temperatures.get_latest_for_keg(keg.id)
        total = keg.volume_total or 0.0
        adjusted = keg.volume_adjusted or 0.0
        return KegStatusResponse(
            keg_id=keg.id,
            position=keg.position,
            beer_id=keg.beer.id if keg.beer else None,
            beer_name=keg.beer.name if keg.beer else None,
            volume_total=total,
            volume_adjusted=adjusted,
            volume_poured=poured,
            volume_remaining=total - adjusted - poured,
            pour_count=self.pours.count_for_keg(keg.id),
            temperature=latest.temperature if latest else None,
            temperature_at=latest.created_at if latest else None,
        )

    # ------------------------------------------------------------------
    # Beers
    # ------------------------------------------------------------------

    @synchronized
    def beer_with_id(self, id: str) -> Beer:
        """
        Beer by identifier.

        Raises:
            ValidationError: If id is empty
            NotFoundError: If no beer has that id
        """
        _require_identifier(id, "beer_id")
        beer = self.beers.get_by_id(id)
        if beer is None:
            raise NotFoundError("Beer", id)
        return beer

    @synchronized
    @log_operation("update_beer_with_id")
    def update_beer_with_id(
        self,
        id: str,
        name: str,
        info: Optional[str],
        type: Optional[str],
        country: Optional[str],
        image_name: Optional[str],
        abv: float,
        create_if_missing: bool = True
    ) -> Beer:
        """
        Overwrite every field of a beer.

        A missing beer is created unless ``create_if_missing`` is False.

        Args:
            id: Identifier
            name: Name ("Stella Artois")
            info: Description ("A pilsner ...")
            type: Beer type ("Lager / Pilsner")
            country: Country ("Belgium")
            image_name: Name of image in resources
            abv: Alcohol by volume
            create_if_missing: Create the beer when no beer has this id

        Returns:
            The created or updated beer

        Raises:
            ValidationError: If id is empty or abv is negative
            NotFoundError: If the beer is missing and create_if_missing is False
        """
        request = _validate(
            BeerUpdateRequest,
            id=id,
            name=name or "",
            info=info,
            type=type,
            country=country,
            image_name=image_name,
            abv=abv,
        )

        beer = self.beers.get_by_id(request.id)
        if beer is None:
            if not create_if_missing:
                raise NotFoundError("Beer", request.id)
            beer = Beer(id=request.id, created_at=self.clock())
            self.gateway.insert(beer)

        beer.name = request.name
        beer.info = request.info
        beer.type = request.type
        beer.country = request.country
        beer.image_name = request.image_name
        beer.abv = request.abv
        self.gateway.save("update_beer_with_id")
        return beer

    # ------------------------------------------------------------------
    # Temperatures
    # ------------------------------------------------------------------

    @synchronized
    @log_operation("add_keg_temperature")
    def add_keg_temperature(self, temperature: float, keg: Keg) -> KegTemperature:
        """
        Record a keg temperature reading, timestamped now.

        Args:
            temperature: Temperature in Celsius
            keg: Keg the reading belongs to

        Raises:
            ValidationError: If keg is missing or temperature is not a finite number
        """
        if keg is None:
            raise ValidationError("Keg is required", {"keg": "missing"})
        if not isinstance(temperature, (int, float)) or not math.isfinite(temperature):
            raise ValidationError("Temperature must be a finite number", {"temperature": repr(temperature)})

        reading = KegTemperature(temperature=float(temperature), keg=keg, created_at=self.clock())
        self.temperatures.create(reading)
        self.gateway.save("add_keg_temperature")
        return reading

    @synchronized
    def temperatures_for_keg(self, keg: Keg, limit: int = DEFAULT_TEMPERATURE_LIMIT) -> List[KegTemperature]:
        """Most recent temperature readings for a keg, newest first."""
        if keg is None:
            raise ValidationError("Keg is required", {"keg": "missing"})
        page = _validate(PageRequest, limit=limit)
        return self.temperatures.get_recent_for_keg(keg.id, page.limit)

    # ------------------------------------------------------------------
    # Pours
    # ------------------------------------------------------------------

    @synchronized
    @log_operation("add_keg_pour")
    def add_keg_pour(self, amount: float, keg: Keg, user: Optional[User] = None) -> KegPour:
        """
        Record a pour and credit it to the user's running total.

        The keg's remaining volume drops implicitly since it is derived
        from the pour log.

        Args:
            amount: Amount in liters
            keg: Keg poured from
            user: User, None for an anonymous pour

        Returns:
            The recorded pour

        Raises:
            ValidationError: If amount is not positive or keg is missing
        """
        request = _validate(PourRequest, amount=amount)
        if keg is None:
            raise ValidationError("Keg is required", {"keg": "missing"})

        pour = KegPour(amount=request.amount, keg=keg, user=user, created_at=self.clock())
        self.pours.create(pour)
        if user is not None:
            user.volume_poured = (user.volume_poured or 0.0) + request.amount
        self.gateway.save("add_keg_pour")
        logger.info("Pour recorded", extra={
            "keg_id": keg.id,
            "rfid": user.rfid if user is not None else None,
            "amount": request.amount,
        })
        return pour

    @synchronized
    def recent_keg_pours(self, limit: int, ascending: bool = False) -> List[KegPour]:
        """
        Pours sorted by time, at most ``limit`` of them.

        With ``ascending`` the oldest pours come first, otherwise the newest.

        Raises:
            ValidationError: If limit is not a positive integer
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError("Limit must be a positive integer", {"limit": repr(limit)})
        return self.pours.get_recent(limit, ascending)

    @synchronized
    def last_pour(self) -> Optional[KegPour]:
        """Most recent pour, or None if nothing has been poured."""
        return self.pours.get_latest()

    @synchronized
    def recent_keg_pours_from_date(
        self,
        from_date: datetime,
        to_date: datetime,
        user: Optional[User] = None
    ) -> List[KegPour]:
        """
        Pours within ``[from_date, to_date]``, oldest first.

        Args:
            from_date: Earliest timestamp, inclusive
            to_date: Latest timestamp, inclusive
            user: Restrict to this user; None matches all pours

        Raises:
            ValidationError: If either date is missing
        """
        if from_date is None or to_date is None:
            raise ValidationError("Date range is required", {"from_date": from_date, "to_date": to_date})
        spec = pours_in_range_spec(from_date, to_date, user.rfid if user is not None else None)
        return self.pours.get_in_range(spec)

    @synchronized
    def rate_for_keg_pours_last_hour_for_user(self, user: Optional[User] = None) -> float:
        """
        Liters per hour poured over the trailing hour, evaluated now.

        Args:
            user: Restrict to this user; None aggregates all pours

        Returns:
            Pour rate in liters per hour
        """
        now = self.clock()
        spec = pours_in_range_spec(now - POUR_RATE_WINDOW, now, user.rfid if user is not None else None)
        hours = POUR_RATE_WINDOW.total_seconds() / 3600.0
        return self.pours.sum_amount(spec) / hours

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @synchronized
    @log_operation("add_or_update_user_with_rfid")
    def add_or_update_user_with_rfid(self, rfid: str, display_name: Optional[str]) -> User:
        """
        Create a user, or rename an existing one.

        A new user starts with nothing poured; renaming leaves the total alone.

        Raises:
            ValidationError: If rfid is empty
        """
        request = _validate(UserUpdateRequest, rfid=rfid, display_name=display_name)

        user = self.users.get_by_rfid(request.rfid)
        if user is None:
            user = User(
                rfid=request.rfid,
                display_name=request.display_name,
                volume_poured=0.0,
                created_at=self.clock(),
            )
            self.users.create(user)
        else:
            user.display_name = request.display_name
        self.gateway.save("add_or_update_user_with_rfid")
        return user

    @synchronized
    def user_with_rfid(self, rfid: str) -> Optional[User]:
        """
        User by RFID, or None when the tag is unknown.

        Raises:
            ValidationError: If rfid is empty
        """
        _require_identifier(rfid, "rfid")
        return self.users.get_by_rfid(rfid)

    @synchronized
    def users_with_offset(self, offset: int = 0, limit: Optional[int] = None) -> List[User]:
        """Page through users ordered by RFID."""
        page = _validate(PageRequest, offset=offset, limit=limit)
        return self.users.get_page_ordered(page.offset, page.limit)

    @synchronized
    def top_users_by_pour_with_offset(self, offset: int = 0, limit: Optional[int] = None) -> List[User]:
        """Page through users by volume poured, largest first, ties by RFID."""
        page = _validate(PageRequest, offset=offset, limit=limit)
        return self.users.get_top_by_pour(page.offset, page.limit)

    @synchronized
    def leaderboard(self, offset: int = 0, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """Ranked rows for the top users page."""
        users = self.top_users_by_pour_with_offset(offset, limit)
        return [
            LeaderboardEntry(
                rank=offset + index + 1,
                rfid=user.rfid,
                display_name=user.display_name,
                volume_poured=user.volume_poured or 0.0,
            )
            for index, user in enumerate(users)
        ]

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    @synchronized
    @log_operation("recompute_stats")
    def recompute_stats(self) -> int:
        """
        Rebuild every user's poured total from the pour log.

        Safe to run repeatedly; a second run changes nothing.

        Returns:
            Number of users whose cached total was corrected
        """
        totals = self.pours.sum_by_user()
        corrected = 0
        for user in self.users.get_page_ordered():
            expected = totals.get(user.rfid, 0.0)
            if user.volume_poured != expected:
                logger.warning("Correcting poured total", extra={
                    "rfid": user.rfid,
                    "cached": user.volume_poured,
                    "recomputed": expected,
                })
                user.volume_poured = expected
                corrected += 1
        self.gateway.save("recompute_stats")
        return corrected
