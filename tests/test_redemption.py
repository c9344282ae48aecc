import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from scoutinghike.core.errors import CodeAlreadyUsed, CodeExpired, EventNotFoundOrInactive, InvalidCode
from scoutinghike.core.session import MemorySessionStore
from scoutinghike.models import Volunteer, VolunteerCode, as_utc
from scoutinghike.services import codes as issuer
from scoutinghike.services.redemption import open_session, redeem_code

T0 = datetime(2026, 5, 16, 9, 0, tzinfo=timezone.utc)


async def _volunteer_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Volunteer))).scalar_one()


class TestRedeem:
    async def test_redeem_then_reuse(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)

        volunteer, ev = await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=30))
        assert volunteer.name == "Jan"
        assert volunteer.event_id == event.id
        assert ev.id == event.id
        assert as_utc(volunteer.login_timestamp) == T0 + timedelta(minutes=30)

        stored = await issuer.get_code(db, event_id=event.id, code=code.access_code)
        assert stored.used is True
        assert as_utc(stored.used_at) == T0 + timedelta(minutes=30)
        assert stored.volunteer_id == volunteer.id

        with pytest.raises(CodeAlreadyUsed):
            await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=40))
        assert await _volunteer_count(db) == 1

    async def test_lowercase_input_is_accepted(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
        volunteer, _ = await redeem_code(db, raw_code=f" {code.access_code.lower()} ", now=T0 + timedelta(minutes=1))
        assert volunteer.name == "Jan"

    async def test_unknown_code(self, db, event):
        with pytest.raises(InvalidCode):
            await redeem_code(db, raw_code="ZZZZZ", now=T0)

    async def test_expired_code_stays_unused_and_is_pruned(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)

        with pytest.raises(CodeExpired):
            await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=61))

        stored = await issuer.get_code(db, event_id=event.id, code=code.access_code)
        assert stored.used is False
        assert await _volunteer_count(db) == 0

        listed = await issuer.list_codes(db, event_id=event.id, now=T0 + timedelta(minutes=61))
        assert listed == []

    async def test_exactly_at_expiry_still_redeems(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
        volunteer, _ = await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=60))
        assert volunteer.name == "Jan"

    async def test_expired_wins_over_used(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
        await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=5))

        with pytest.raises(CodeExpired):
            await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=90))

    async def test_inactive_event_creates_nothing(self, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
        event.is_active = False
        await db.commit()

        with pytest.raises(EventNotFoundOrInactive):
            await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=1))

        assert await _volunteer_count(db) == 0
        stored = await issuer.get_code(db, event_id=event.id, code=code.access_code)
        assert stored.used is False

    async def test_stale_reader_loses_the_race(self, session_maker, db, event):
        code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)

        async with session_maker() as slow, session_maker() as fast:
            # slow has the code in its identity map while it is still unused
            seen = (await slow.execute(
                select(VolunteerCode).where(VolunteerCode.id == code.id)
            )).scalar_one()
            assert seen.used is False

            await redeem_code(fast, raw_code=code.access_code, now=T0 + timedelta(minutes=1))

            with pytest.raises(CodeAlreadyUsed):
                await redeem_code(slow, raw_code=code.access_code, now=T0 + timedelta(minutes=1))

        assert await _volunteer_count(db) == 1


async def test_open_session_carries_event(event):
    store = MemorySessionStore()
    volunteer = Volunteer(id=uuid.uuid4(), name="Jan", event_id=event.id, login_timestamp=T0)

    session, credential = open_session(store, volunteer=volunteer, event=event, now=T0)

    assert session.name == "Jan"
    assert session.event_id == event.id
    assert session.event_name == "Nachtwandeling"
    assert session.timestamp == T0
    assert store.load(credential) == session
