import threading
from datetime import timedelta

import pytest

from exceptions import NotFoundError, StorageError, ValidationError
from models import Beer, KegPour, User
from services.data_store import DataStore
from services.persistence_gateway import PersistenceGateway


class TestPours:

    def test_pour_credits_user_and_is_most_recent(self, store, keg, user):
        store.add_keg_pour(0.25, keg, user)
        before = user.volume_poured

        pour = store.add_keg_pour(0.4, keg, user)

        assert user.volume_poured == pytest.approx(before + 0.4)
        assert store.recent_keg_pours(1, ascending=False) == [pour]
        assert store.last_pour() is pour

    def test_pour_timestamp_comes_from_clock(self, store, keg, clock):
        pour = store.add_keg_pour(0.3, keg)

        assert pour.created_at == clock.now

    def test_anonymous_pour_reduces_keg_only(self, store, keg, user):
        store.add_keg_pour(0.5, keg)

        assert user.volume_poured == 0.0
        assert store.last_pour().user is None
        assert keg.volume_remaining == pytest.approx(58.67 - 0.5)

    @pytest.mark.parametrize("amount", [0, -0.5, float("nan"), float("inf")])
    def test_invalid_amount_is_rejected_without_writing(self, store, keg, user, amount):
        with pytest.raises(ValidationError):
            store.add_keg_pour(amount, keg, user)

        assert user.volume_poured == 0.0
        assert store.last_pour() is None
        assert store.pours.count() == 0

    def test_pour_requires_keg(self, store, user):
        with pytest.raises(ValidationError):
            store.add_keg_pour(0.3, None, user)

    def test_last_pour_empty_store(self, store):
        assert store.last_pour() is None

    def test_recent_pours_ordering(self, store, keg, clock):
        first = store.add_keg_pour(0.1, keg)
        clock.advance(minutes=1)
        second = store.add_keg_pour(0.2, keg)
        clock.advance(minutes=1)
        third = store.add_keg_pour(0.3, keg)

        assert store.recent_keg_pours(2, ascending=False) == [third, second]
        assert store.recent_keg_pours(2, ascending=True) == [first, second]
        assert store.recent_keg_pours(10, ascending=True) == [first, second, third]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_recent_pours_rejects_non_positive_limit(self, store, limit):
        with pytest.raises(ValidationError):
            store.recent_keg_pours(limit)

    def test_pours_from_date_is_inclusive_and_ascending(self, store, keg, user, clock):
        start = clock.now
        in_range_a = store.add_keg_pour(0.1, keg, user)
        clock.advance(minutes=30)
        in_range_b = store.add_keg_pour(0.2, keg)
        end = clock.now
        clock.advance(minutes=1)
        store.add_keg_pour(0.3, keg, user)

        assert store.recent_keg_pours_from_date(start, end) == [in_range_a, in_range_b]
        assert store.recent_keg_pours_from_date(start, end, user) == [in_range_a]

    def test_pours_from_date_requires_dates(self, store, clock):
        with pytest.raises(ValidationError):
            store.recent_keg_pours_from_date(None, clock.now)


class TestPourRate:

    def test_only_last_hour_counts(self, store, keg, clock):
        now = clock.now
        clock.now = now - timedelta(minutes=90)
        store.add_keg_pour(0.5, keg)
        clock.now = now - timedelta(minutes=10)
        store.add_keg_pour(0.5, keg)
        clock.now = now

        assert store.rate_for_keg_pours_last_hour_for_user(None) == pytest.approx(0.5)

    def test_rate_for_user(self, store, keg, user, clock):
        store.add_keg_pour(0.3, keg, user)
        store.add_keg_pour(0.2, keg)
        clock.advance(minutes=5)

        assert store.rate_for_keg_pours_last_hour_for_user(user) == pytest.approx(0.3)
        assert store.rate_for_keg_pours_last_hour_for_user() == pytest.approx(0.5)

    def test_rate_is_evaluated_at_call_time(self, store, keg, clock):
        store.add_keg_pour(0.5, keg)
        assert store.rate_for_keg_pours_last_hour_for_user() == pytest.approx(0.5)

        clock.advance(minutes=61)

        assert store.rate_for_keg_pours_last_hour_for_user() == 0.0

    def test_window_includes_boundary(self, store, keg, clock):
        store.add_keg_pour(0.4, keg)
        clock.advance(hours=1)

        assert store.rate_for_keg_pours_last_hour_for_user() == pytest.approx(0.4)


class TestUsers:

    def test_new_user_starts_at_zero(self, store):
        user = store.add_or_update_user_with_rfid("ABC", "Ann")

        assert user.volume_poured == 0.0
        assert store.user_with_rfid("ABC") is user

    def test_update_renames_and_keeps_total(self, store, keg, user):
        store.add_keg_pour(0.6, keg, user)

        updated = store.add_or_update_user_with_rfid(user.rfid, "Gabriel")

        assert updated is user
        assert updated.display_name == "Gabriel"
        assert updated.volume_poured == pytest.approx(0.6)
        assert store.users.count() == 1

    def test_unknown_rfid_is_absent(self, store):
        assert store.user_with_rfid("nope") is None

    @pytest.mark.parametrize("rfid", ["", "   ", None])
    def test_empty_rfid_is_rejected(self, store, rfid):
        with pytest.raises(ValidationError):
            store.add_or_update_user_with_rfid(rfid, "Nobody")
        assert store.users.count() == 0

    def test_users_with_offset(self, store):
        for rfid in ["C", "A", "B"]:
            store.add_or_update_user_with_rfid(rfid, rfid.lower())

        assert [u.rfid for u in store.users_with_offset(0, 2)] == ["A", "B"]
        assert [u.rfid for u in store.users_with_offset(2, 2)] == ["C"]
        assert [u.rfid for u in store.users_with_offset()] == ["A", "B", "C"]
        assert store.users_with_offset(0, 0) == []

    def test_negative_paging_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.users_with_offset(-1, 5)
        with pytest.raises(ValidationError):
            store.users_with_offset(0, -5)


class TestLeaderboard:

    @pytest.fixture
    def drinkers(self, store, keg):
        amounts = {"D": 0.5, "A": 1.5, "C": 0.5, "B": 2.0}
        for rfid, amount in amounts.items():
            user = store.add_or_update_user_with_rfid(rfid, f"user {rfid}")
            store.add_keg_pour(amount, keg, user)
        store.add_or_update_user_with_rfid("E", "dry")

    def test_sorted_by_volume_then_rfid(self, store, drinkers):
        top = store.top_users_by_pour_with_offset(0, 10)

        assert [u.rfid for u in top] == ["B", "A", "C", "D", "E"]
        for first, second in zip(top, top[1:]):
            assert first.volume_poured >= second.volume_poured

    def test_pagination(self, store, drinkers):
        assert [u.rfid for u in store.top_users_by_pour_with_offset(1, 2)] == ["A", "C"]

    def test_leaderboard_ranks(self, store, drinkers):
        entries = store.leaderboard(offset=1, limit=2)

        assert [(e.rank, e.rfid) for e in entries] == [(2, "A"), (3, "C")]
        assert entries[0].volume_poured == pytest.approx(1.5)


class TestRecomputeStats:

    def test_recompute_fixes_drift_and_is_idempotent(self, store, keg, user):
        other = store.add_or_update_user_with_rfid("OTHER", "Other")
        store.add_keg_pour(0.3, keg, user)
        store.add_keg_pour(0.45, keg, user)
        store.add_keg_pour(0.2, keg)

        user.volume_poured = 99.0
        other.volume_poured = 1.0
        store.save()

        assert store.recompute_stats() == 2
        first = {u.rfid: u.volume_poured for u in store.users_with_offset()}

        assert store.recompute_stats() == 0
        second = {u.rfid: u.volume_poured for u in store.users_with_offset()}

        assert first == second
        assert first[user.rfid] == pytest.approx(sum(p.amount for p in user.pours))
        assert first[other.rfid] == 0.0


class TestBeers:

    def test_update_overwrites_every_field(self, store, beer):
        store.update_beer_with_id("stella", "Stella", None, None, None, None, 4.8)

        fetched = store.beer_with_id("stella")
        assert fetched.name == "Stella"
        assert fetched.info is None
        assert fetched.type is None
        assert fetched.country is None
        assert fetched.image_name is None
        assert fetched.abv == pytest.approx(4.8)

    def test_update_creates_on_miss_by_default(self, store):
        beer = store.update_beer_with_id("guinness", "Guinness", "Stout", "Stout", "Ireland", None, 4.2)

        assert store.beer_with_id("guinness") is beer

    def test_update_without_create_raises_on_miss(self, store):
        with pytest.raises(NotFoundError):
            store.update_beer_with_id("ghost", "Ghost", None, None, None, None, 5.0, create_if_missing=False)

        assert store.beers.count() == 0

    def test_update_without_create_updates_existing(self, store, beer):
        store.update_beer_with_id("stella", "Renamed", None, None, None, None, 5.0, create_if_missing=False)

        assert store.beer_with_id("stella").name == "Renamed"

    def test_missing_beer_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.beer_with_id("missing")
        assert exc_info.value.details == {"entity": "Beer", "key": "missing"}

    @pytest.mark.parametrize("beer_id, abv", [("", 5.0), ("ok", -1.0)])
    def test_invalid_beer_is_rejected(self, store, beer_id, abv):
        with pytest.raises(ValidationError):
            store.update_beer_with_id(beer_id, "Bad", None, None, None, None, abv)
        assert store.beers.count() == 0

    def test_add_keg_with_beer_round_trip(self, store, engine):
        beer = Beer(id="duvel", name="Duvel", info="Strong golden ale", type="Belgian Strong Ale",
                    country="Belgium", image_name="duvel.png", abv=8.5)

        keg = store.add_keg_with_beer(beer)

        assert keg.volume_total == 0.0
        assert keg.volume_adjusted == 0.0
        assert keg.position is None

        with DataStore(PersistenceGateway(engine)) as fresh:
            fetched = fresh.beer_with_id("duvel")
            for field in ("id", "name", "info", "type", "country", "image_name", "abv"):
                assert getattr(fetched, field) == getattr(beer, field)

    def test_add_keg_with_beer_requires_id(self, store):
        with pytest.raises(ValidationError):
            store.add_keg_with_beer(Beer(id="", name="Nameless"))
        with pytest.raises(ValidationError):
            store.add_keg_with_beer(None)


class TestKegs:

    def test_set_keg_last_write_wins(self, store, beer):
        keg_a = store.add_keg_with_beer(beer)
        keg_b = store.add_keg_with_beer(beer)

        store.set_keg(keg_a, 1)
        store.set_keg(keg_b, 1)

        assert store.keg_at_position(1) is keg_b
        assert keg_a.position is None
        assert store.keg_with_id(keg_a.id) is keg_a

    def test_set_keg_moves_between_positions(self, store, keg):
        store.set_keg(keg, 0)
        store.set_keg(keg, 3)

        assert store.keg_at_position(0) is None
        assert store.keg_at_position(3) is keg

    def test_set_same_keg_twice_is_noop(self, store, keg):
        store.set_keg(keg, 2)
        store.set_keg(keg, 2)

        assert store.keg_at_position(2) is keg

    def test_empty_position(self, store):
        assert store.keg_at_position(7) is None

    def test_position_lookup_ignores_unmounted_kegs(self, store, beer):
        store.add_keg_with_beer(beer)

        with pytest.raises(ValidationError):
            store.keg_at_position(None)
        with pytest.raises(ValidationError):
            store.keg_at_position("0")

    def test_set_keg_rejects_bad_input(self, store, keg):
        with pytest.raises(ValidationError):
            store.set_keg(None, 0)
        with pytest.raises(ValidationError):
            store.set_keg(keg, "left")

    def test_add_or_update_keg_overwrites(self, store, beer):
        store.add_or_update_keg_with_id("k", beer, 1.0, 50.0)
        keg = store.add_or_update_keg_with_id("k", beer, 2.5, 30.0)

        assert keg.volume_adjusted == 2.5
        assert keg.volume_total == 30.0
        assert store.kegs.count() == 1

    def test_add_or_update_keg_rejects_empty_id(self, store, beer):
        with pytest.raises(ValidationError):
            store.add_or_update_keg_with_id("", beer, 0.0, 10.0)

    def test_unknown_keg_is_absent(self, store):
        assert store.keg_with_id("nope") is None

    def test_kegs_ordered_by_position_unmounted_last(self, store, beer, clock):
        unmounted = store.add_keg_with_beer(beer)
        clock.advance(seconds=1)
        right = store.add_keg_with_beer(beer)
        clock.advance(seconds=1)
        left = store.add_keg_with_beer(beer)
        store.set_keg(right, 2)
        store.set_keg(left, 0)

        assert store.kegs_with_offset(0, 10) == [left, right, unmounted]
        assert store.kegs_with_offset(1, 1) == [right]

    def test_remaining_volume(self, store, beer, user):
        keg = store.add_or_update_keg_with_id("k", beer, 1.0, 20.0)
        store.add_keg_pour(0.5, keg, user)
        store.add_keg_pour(1.5, keg)

        assert keg.volume_remaining == pytest.approx(17.0)

    def test_remaining_volume_is_not_clamped(self, store, beer):
        keg = store.add_or_update_keg_with_id("k", beer, 0.0, 1.0)
        store.add_keg_pour(1.5, keg)

        assert keg.volume_remaining == pytest.approx(-0.5)

    def test_keg_status(self, store, keg, user, clock):
        store.set_keg(keg, 0)
        store.add_keg_pour(0.5, keg, user)
        store.add_keg_temperature(3.5, keg)
        clock.advance(minutes=5)
        store.add_keg_temperature(4.0, keg)

        status = store.keg_status(keg)

        assert status.keg_id == "keg-1"
        assert status.position == 0
        assert status.beer_name == "Stella Artois"
        assert status.volume_poured == pytest.approx(0.5)
        assert status.volume_remaining == pytest.approx(58.17)
        assert status.pour_count == 1
        assert status.temperature == 4.0
        assert status.temperature_at == clock.now
        assert status.percent_remaining == pytest.approx(100 * 58.17 / 58.67)


class TestTemperatures:

    def test_readings_are_appended_with_timestamp(self, store, keg, clock):
        first = store.add_keg_temperature(4.0, keg)
        clock.advance(minutes=1)
        second = store.add_keg_temperature(4.5, keg)

        assert first.created_at < second.created_at
        assert store.temperatures_for_keg(keg) == [second, first]
        assert store.temperatures_for_keg(keg, limit=1) == [second]
        assert keg.temperatures == [first, second]

    @pytest.mark.parametrize("value", [float("nan"), "cold"])
    def test_invalid_temperature(self, store, keg, value):
        with pytest.raises(ValidationError):
            store.add_keg_temperature(value, keg)

    def test_temperature_requires_keg(self, store):
        with pytest.raises(ValidationError):
            store.add_keg_temperature(4.0, None)


class TestSave:

    def test_failed_save_rolls_back_and_keeps_committed_state(self, store, beer, keg, user):
        store.add_keg_pour(0.5, keg, user)
        store.gateway.insert(User(rfid="", display_name="broken"))

        with pytest.raises(StorageError) as exc_info:
            store.save()

        assert exc_info.value.details == {"operation": "save"}
        assert store.beer_with_id("stella") is not None
        assert store.user_with_rfid(user.rfid).volume_poured == pytest.approx(0.5)
        assert store.pours.count() == 1

    def test_retry_after_failed_save(self, store, keg):
        store.gateway.insert(KegPour(amount=-1.0, keg=keg))
        with pytest.raises(StorageError):
            store.save()

        store.add_keg_pour(0.3, keg)

        assert store.pours.count() == 1


def test_open_uses_configured_database(tmp_path, monkeypatch):
    monkeypatch.delenv("KEGPAD_DB_PATH", raising=False)
    monkeypatch.setenv("KEGPAD_DATA_DIR", str(tmp_path))

    with DataStore.open() as store:
        store.add_or_update_user_with_rfid("XYZ", "Persisted")

    assert (tmp_path / "kegpad.db").exists()
    with DataStore.open() as reopened:
        assert reopened.user_with_rfid("XYZ").display_name == "Persisted"


def test_close_releases_opened_engine(tmp_path):
    store = DataStore.open(f"sqlite:///{tmp_path / 'kegpad.db'}")
    store.add_or_update_user_with_rfid("XYZ", "Pooled")

    store.close()

    assert store.gateway.engine.pool.checkedin() == 0


def test_close_leaves_injected_engine_open(engine):
    store = DataStore(PersistenceGateway(engine))
    store.add_or_update_user_with_rfid("XYZ", "Shared")
    store.close()

    with DataStore(PersistenceGateway(engine)) as other:
        assert other.user_with_rfid("XYZ").display_name == "Shared"


class TestConcurrency:

    def test_concurrent_pours_keep_totals_consistent(self, store, keg, user):
        threads_count, pours_each, amount = 8, 25, 0.25
        errors = []

        def pour():
            try:
                for _ in range(pours_each):
                    store.add_keg_pour(amount, keg, user)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=pour) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert store.pours.count() == threads_count * pours_each
        assert user.volume_poured == threads_count * pours_each * amount
        assert store.recompute_stats() == 0

    def test_operations_wait_for_the_store_lock(self, store, keg, user):
        store.add_keg_pour(0.5, keg, user)
        finished = threading.Event()

        def recompute():
            store.recompute_stats()
            finished.set()

        with store._lock:
            worker = threading.Thread(target=recompute)
            worker.start()
            assert not finished.wait(0.2)

        worker.join()
        assert finished.is_set()
