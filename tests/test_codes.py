import string
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from scoutinghike.core.errors import DuplicateName, InvalidCode, InvalidName, NotFound
from scoutinghike.models import Volunteer, VolunteerCode, as_utc
from scoutinghike.services import codes as issuer
from scoutinghike.services.redemption import redeem_code

T0 = datetime(2026, 5, 16, 9, 0, tzinfo=timezone.utc)
ALPHABET = set(string.digits + string.ascii_uppercase)


def test_new_access_code_is_five_base36_chars():
    for _ in range(50):
        code = issuer.new_access_code()
        assert len(code) == 5
        assert set(code) <= ALPHABET


def test_normalize_code_uppercases_and_trims():
    assert issuer.normalize_code(" ab3f9 ") == "AB3F9"


async def test_generate_sets_one_hour_expiry(db, event):
    code = await issuer.generate_code(db, event_id=event.id, volunteer_name="  Jan  ", now=T0)

    assert code.volunteer_name == "Jan"
    assert code.used is False
    assert code.used_at is None
    assert as_utc(code.expires_at) - as_utc(code.created_at) == timedelta(hours=1)
    assert code.access_code == code.access_code.upper()


async def test_generate_rejects_blank_name(db, event):
    with pytest.raises(InvalidName):
        await issuer.generate_code(db, event_id=event.id, volunteer_name="   ", now=T0)


async def test_generate_unknown_event(db):
    import uuid
    with pytest.raises(NotFound):
        await issuer.generate_code(db, event_id=uuid.uuid4(), volunteer_name="Jan", now=T0)


async def test_second_live_code_for_same_name_is_rejected(db, event):
    await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    with pytest.raises(DuplicateName):
        await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0 + timedelta(minutes=10))

    # other names are fine
    await issuer.generate_code(db, event_id=event.id, volunteer_name="Piet", now=T0)


async def test_expired_code_does_not_block_new_code_for_name(db, event):
    await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    new = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0 + timedelta(minutes=61))

    remaining = (await db.execute(select(VolunteerCode.access_code))).scalars().all()
    assert remaining == [new.access_code]


async def test_used_code_does_not_block_new_code_for_name(db, event):
    first = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    await redeem_code(db, raw_code=first.access_code, now=T0 + timedelta(minutes=5))

    second = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0 + timedelta(minutes=6))
    assert second.used is False


async def test_list_newest_first(db, event):
    a = await issuer.generate_code(db, event_id=event.id, volunteer_name="Anna", now=T0)
    b = await issuer.generate_code(db, event_id=event.id, volunteer_name="Bram", now=T0 + timedelta(minutes=1))
    c = await issuer.generate_code(db, event_id=event.id, volunteer_name="Cees", now=T0 + timedelta(minutes=2))

    listed = await issuer.list_codes(db, event_id=event.id, now=T0 + timedelta(minutes=3))
    assert [x.access_code for x in listed] == [c.access_code, b.access_code, a.access_code]


async def test_list_prunes_expired_unused_and_keeps_used(db, event):
    used = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    await redeem_code(db, raw_code=used.access_code, now=T0 + timedelta(minutes=30))
    stale = await issuer.generate_code(db, event_id=event.id, volunteer_name="Piet", now=T0)
    fresh = await issuer.generate_code(db, event_id=event.id, volunteer_name="Klaas", now=T0 + timedelta(minutes=45))

    later = T0 + timedelta(minutes=90)
    first = await issuer.list_codes(db, event_id=event.id, now=later)
    second = await issuer.list_codes(db, event_id=event.id, now=later)

    codes = {x.access_code for x in first}
    assert codes == {used.access_code, fresh.access_code}
    assert stale.access_code not in codes
    assert {x.access_code for x in second} == codes


async def test_revoke_unused_code_removes_only_the_code(db, event):
    code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    other = await issuer.generate_code(db, event_id=event.id, volunteer_name="Piet", now=T0)
    await redeem_code(db, raw_code=other.access_code, now=T0 + timedelta(minutes=1))

    await issuer.revoke_code(db, event_id=event.id, code=code.access_code.lower())

    assert await issuer.get_code(db, event_id=event.id, code=code.access_code) is None
    volunteers = (await db.execute(select(Volunteer))).scalars().all()
    assert [v.name for v in volunteers] == ["Piet"]


async def test_revoke_used_code_removes_its_volunteer(db, event):
    code = await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    volunteer, _ = await redeem_code(db, raw_code=code.access_code, now=T0 + timedelta(minutes=1))

    await issuer.revoke_code(db, event_id=event.id, code=code.access_code)

    assert (await db.execute(select(VolunteerCode))).scalars().all() == []
    assert (await db.execute(select(Volunteer).where(Volunteer.id == volunteer.id))).scalar_one_or_none() is None


async def test_revoke_unknown_code(db, event):
    with pytest.raises(InvalidCode):
        await issuer.revoke_code(db, event_id=event.id, code="ZZZZZ")


async def test_sweep_removes_expired_unused_across_events(db, event):
    await issuer.generate_code(db, event_id=event.id, volunteer_name="Jan", now=T0)
    await issuer.generate_code(db, event_id=event.id, volunteer_name="Piet", now=T0 + timedelta(minutes=30))

    assert await issuer.sweep_expired_codes(db, now=T0 + timedelta(minutes=65)) == 1
    remaining = (await db.execute(select(VolunteerCode.volunteer_name))).scalars().all()
    assert remaining == ["Piet"]
