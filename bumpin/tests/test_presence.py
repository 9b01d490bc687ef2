from datetime import timedelta

import pytest

from bumpin.errors import NotAuthorized, NotFound, ValidationError
from bumpin.models import AsyncSessionLocal, utcnow
from bumpin.models.presence import CheckIn
from bumpin.presence import (
    create_check_in,
    list_active,
    group_by_place,
    update_check_in,
    expire_check_in,
)
from bumpin.relationships import propose_relationship, accept_relationship


async def insert_check_in(**fields):
    async with AsyncSessionLocal() as session:
        row = CheckIn(**fields)
        session.add(row)
        await session.commit()
        return row.id


@pytest.mark.asyncio
async def test_default_ttl_is_two_hours(seed):
    before = utcnow()
    result = await create_check_in(seed.alice, seed.cafe, activity='coffee')
    after = utcnow()
    assert result.ok
    check_in = result.data
    assert before <= check_in.created_at <= after
    assert check_in.expires_at - check_in.created_at == timedelta(hours=2)
    assert check_in.privacy == 'public'
    assert check_in.place.name == 'Corner Cafe'
    assert check_in.profile.handle == 'alice_a'


@pytest.mark.asyncio
async def test_explicit_ttl_and_expiry(seed):
    with_ttl = (await create_check_in(seed.alice, seed.cafe, ttl=timedelta(minutes=30))).data
    assert with_ttl.expires_at - with_ttl.created_at == timedelta(minutes=30)

    until = utcnow() + timedelta(hours=5)
    with_until = (await create_check_in(seed.bob, seed.park, expires_at=until)).data
    assert with_until.expires_at == until


@pytest.mark.asyncio
async def test_create_validates_input(seed):
    bad_privacy = await create_check_in(seed.alice, seed.cafe, privacy='secret')
    assert isinstance(bad_privacy.error, ValidationError)

    zero_ttl = await create_check_in(seed.alice, seed.cafe, ttl=timedelta(0))
    assert isinstance(zero_ttl.error, ValidationError)

    past = await create_check_in(seed.alice, seed.cafe, expires_at=utcnow() - timedelta(minutes=1))
    assert isinstance(past.error, ValidationError)

    both = await create_check_in(
        seed.alice, seed.cafe, ttl=timedelta(hours=1), expires_at=utcnow() + timedelta(hours=1)
    )
    assert isinstance(both.error, ValidationError)

    too_long = await create_check_in(seed.alice, seed.cafe, activity='x' * 281)
    assert isinstance(too_long.error, ValidationError)

    unknown_place = await create_check_in(seed.alice, 'moon')
    assert isinstance(unknown_place.error, NotFound)

    assert (await list_active()).data == []


@pytest.mark.asyncio
async def test_expire_removes_from_active_set_before_ttl(seed):
    created = (await create_check_in(seed.alice, seed.cafe, ttl=timedelta(hours=1))).data
    assert [c.id for c in (await list_active()).data] == [created.id]

    expired = await expire_check_in(created.id, seed.alice)
    assert expired.ok
    assert expired.data.expires_at <= utcnow()
    assert expired.data.expires_at < created.expires_at

    assert (await list_active()).data == []
    assert (await group_by_place()).data == {}


@pytest.mark.asyncio
async def test_expire_is_owner_only_and_idempotent(seed):
    created = (await create_check_in(seed.alice, seed.cafe)).data

    assert isinstance((await expire_check_in(created.id, seed.bob)).error, NotAuthorized)
    assert isinstance((await expire_check_in('missing', seed.alice)).error, NotFound)

    first = (await expire_check_in(created.id, seed.alice)).data
    second = (await expire_check_in(created.id, seed.alice)).data
    assert second.expires_at == first.expires_at


@pytest.mark.asyncio
async def test_list_active_skips_past_and_keeps_indefinite(seed):
    now = utcnow()
    stale = await insert_check_in(
        subject_id=seed.bob, place_id=seed.park, created_at=now - timedelta(hours=3),
        expires_at=now - timedelta(hours=1),
    )
    forever = await insert_check_in(
        subject_id=seed.carol, place_id=seed.bar, created_at=now - timedelta(days=30), expires_at=None,
    )
    fresh = (await create_check_in(seed.alice, seed.cafe)).data

    active = (await list_active()).data
    assert [c.id for c in active] == [fresh.id, forever]
    assert stale not in [c.id for c in active]
    assert all(c.expires_at is None or c.expires_at > utcnow() for c in active)


@pytest.mark.asyncio
async def test_active_check_ins_are_newest_first(seed):
    first = (await create_check_in(seed.alice, seed.cafe)).data
    second = (await create_check_in(seed.bob, seed.park)).data
    third = (await create_check_in(seed.carol, seed.cafe)).data

    assert [c.id for c in (await list_active()).data] == [third.id, second.id, first.id]


@pytest.mark.asyncio
async def test_group_by_place_partitions_the_active_set(seed):
    a = (await create_check_in(seed.alice, seed.cafe)).data
    b = (await create_check_in(seed.bob, seed.park)).data
    c = (await create_check_in(seed.carol, seed.cafe)).data
    d = (await create_check_in(seed.dave, seed.bar)).data
    gone = (await create_check_in(seed.dave, seed.park)).data
    await expire_check_in(gone.id, seed.dave)

    groups = (await group_by_place()).data
    active_ids = [x.id for x in (await list_active()).data]

    # first-seen place order over the newest-first fetch
    assert list(groups) == [seed.bar, seed.cafe, seed.park]
    assert [x.id for x in groups[seed.cafe].check_ins] == [c.id, a.id]
    assert [x.id for x in groups[seed.park].check_ins] == [b.id]
    assert groups[seed.bar].place.name == 'Blue Bar'

    members = [x.id for group in groups.values() for x in group.check_ins]
    assert sorted(members) == sorted(active_ids)
    assert len(members) == len(set(members))
    assert d.id in members and gone.id not in members


@pytest.mark.asyncio
async def test_update_merges_fields_for_owner_only(seed):
    created = (await create_check_in(seed.alice, seed.cafe, activity='coffee')).data

    denied = await update_check_in(created.id, seed.bob, {'activity': 'hijack'})
    assert isinstance(denied.error, NotAuthorized)

    updated = await update_check_in(created.id, seed.alice, {'activity': 'lunch', 'privacy': 'friends'})
    assert updated.ok
    assert updated.data.activity == 'lunch'
    assert updated.data.privacy == 'friends'
    assert updated.data.expires_at == created.expires_at

    indefinite = await update_check_in(created.id, seed.alice, {'expires_at': None})
    assert indefinite.data.expires_at is None
    assert [c.id for c in (await list_active()).data] == [created.id]


@pytest.mark.asyncio
async def test_update_rejects_bad_fields_and_expired_rows(seed):
    created = (await create_check_in(seed.alice, seed.cafe)).data

    unknown = await update_check_in(created.id, seed.alice, {'place_id': seed.park})
    assert isinstance(unknown.error, ValidationError)

    bad_privacy = await update_check_in(created.id, seed.alice, {'privacy': 'everyone'})
    assert isinstance(bad_privacy.error, ValidationError)

    past = await update_check_in(created.id, seed.alice, {'expires_at': utcnow() - timedelta(seconds=1)})
    assert isinstance(past.error, ValidationError)

    missing = await update_check_in('missing', seed.alice, {'activity': 'x'})
    assert isinstance(missing.error, NotFound)

    await expire_check_in(created.id, seed.alice)
    revive = await update_check_in(created.id, seed.alice, {'expires_at': utcnow() + timedelta(hours=1)})
    assert isinstance(revive.error, ValidationError)
    assert (await list_active()).data == []


@pytest.mark.asyncio
async def test_viewer_sees_only_what_privacy_allows(seed):
    rel = (await propose_relationship(seed.alice, seed.bob)).data
    await accept_relationship(rel.id, seed.bob)

    public = (await create_check_in(seed.carol, seed.bar, privacy='public')).data
    friends_only = (await create_check_in(seed.bob, seed.cafe, privacy='friends')).data
    private = (await create_check_in(seed.bob, seed.park, privacy='private')).data

    def visible(result):
        return {c.id for c in result.data}

    assert visible(await list_active(viewer_id=seed.alice)) == {public.id, friends_only.id}
    assert visible(await list_active(viewer_id=seed.carol)) == {public.id}
    assert visible(await list_active(viewer_id=seed.bob)) == {public.id, friends_only.id, private.id}
    assert visible(await list_active()) == {public.id, friends_only.id, private.id}

    groups = (await group_by_place(viewer_id=seed.carol)).data
    assert list(groups) == [seed.bar]
