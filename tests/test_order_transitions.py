from uuid import uuid4

import pytest

from songorders.domain.enums import OrderStatus, PaymentStatus, TrackStatus
from songorders.domain.errors import ContentRejected, InvalidTransition, NotFoundOrForbidden
from songorders.domain.models import CreateOrderIn


def _brief(**kw):
    data = {"occasion": "Anniversary", "style": "Bossa", "story_raw": "Ten years of Sunday breakfasts together."}
    data.update(kw)
    return CreateOrderIn(**data)


@pytest.mark.asyncio
async def test_create_order_starts_as_draft(store, transitions):
    user_id = uuid4()
    order = await transitions.create_order(user_id, _brief())

    assert order.status == OrderStatus.DRAFT
    assert order.payment_status == PaymentStatus.PENDING
    assert store.orders[order.id].user_id == user_id
    assert store.event_types(order.id) == ["ORDER_CREATED"]


@pytest.mark.asyncio
async def test_rejected_story_is_never_stored(store, transitions):
    with pytest.raises(ContentRejected):
        await transitions.create_order(uuid4(), _brief(story_raw="vai se fuder"))
    assert store.orders == {}


@pytest.mark.asyncio
async def test_submit_then_payment(store, transitions):
    order = await transitions.create_order(uuid4(), _brief())

    submitted, changed = await transitions.fire(order.id, OrderStatus.AWAITING_PAYMENT)
    assert changed and submitted.status == OrderStatus.AWAITING_PAYMENT

    paid, changed = await transitions.fire(order.id, OrderStatus.PAID)
    assert changed
    assert paid.status == OrderStatus.PAID
    assert paid.payment_status == PaymentStatus.PAID
    # only PAID has a message in the status table
    assert [log["title"] for log in store.notification_logs] == ["Payment confirmed"]


@pytest.mark.asyncio
async def test_redelivered_event_is_noop(store, transitions):
    order = store.seed_order()

    same, changed = await transitions.fire(order.id, OrderStatus.PAID)

    assert not changed
    assert same.status == OrderStatus.PAID
    assert store.event_types(order.id) == []


@pytest.mark.asyncio
async def test_pipeline_owned_targets_are_refused(store, transitions):
    order = store.seed_order(status=OrderStatus.LYRICS_PENDING)

    for target in (OrderStatus.LYRICS_PENDING, OrderStatus.LYRICS_GENERATED, OrderStatus.APPROVED):
        with pytest.raises(InvalidTransition) as ei:
            await transitions.fire(order.id, target)
        assert ei.value.code == "internal_trigger"


@pytest.mark.asyncio
async def test_out_of_order_event_is_refused(store, transitions):
    order = store.seed_order(status=OrderStatus.DRAFT)

    with pytest.raises(InvalidTransition):
        await transitions.fire(order.id, OrderStatus.MUSIC_READY)
    assert store.orders[order.id].status == OrderStatus.DRAFT


@pytest.mark.asyncio
async def test_unknown_order(transitions):
    with pytest.raises(NotFoundOrForbidden):
        await transitions.fire(uuid4(), OrderStatus.PAID)


@pytest.fixture
def approved(store):
    order = store.seed_order(status=OrderStatus.LYRICS_GENERATED)
    lyric = store.seed_lyric(order.id, 1, title="Sunday Breakfast")
    store.seed_lyric(order.id, 2)
    return order, lyric


async def _approve(approval, order, lyric):
    await approval.approve_lyric(user_id=order.user_id, order_id=order.id, lyric_id=lyric.id)


@pytest.mark.asyncio
async def test_production_events_move_the_track(store, transitions, approval, approved):
    order, lyric = approved
    await _approve(approval, order, lyric)

    generating, _ = await transitions.fire(
        order.id, OrderStatus.MUSIC_GENERATING, meta={"song_title": "Ten Years", "style_prompt": "bossa nova, warm"}
    )
    assert generating.song_title == "Ten Years"
    assert generating.style_prompt == "bossa nova, warm"
    assert store.tracks[order.id].status == TrackStatus.generating

    ready, _ = await transitions.fire(order.id, OrderStatus.MUSIC_READY, meta={"cover_url": "https://cdn.test/c.png"})
    assert ready.cover_url == "https://cdn.test/c.png"
    assert ready.song_title == "Ten Years"
    assert store.tracks[order.id].status == TrackStatus.ready
    assert store.notification_logs[-1]["body"] == 'Your song "Ten Years" is ready to play.'

    done, _ = await transitions.fire(order.id, OrderStatus.COMPLETED)
    assert done.status == OrderStatus.COMPLETED


@pytest.mark.asyncio
async def test_music_ready_falls_back_to_lyric_title(store, transitions, approval, approved):
    order, lyric = approved
    await _approve(approval, order, lyric)
    await transitions.fire(order.id, OrderStatus.MUSIC_GENERATING)
    await transitions.fire(order.id, OrderStatus.MUSIC_READY)

    assert store.notification_logs[-1]["body"] == 'Your song "Sunday Breakfast" is ready to play.'


@pytest.mark.asyncio
async def test_noop_event_still_stores_metadata(store, transitions):
    order = store.seed_order(status=OrderStatus.MUSIC_GENERATING)

    same, changed = await transitions.fire(order.id, OrderStatus.MUSIC_GENERATING, meta={"song_title": "Late Title"})

    assert not changed
    assert same.song_title == "Late Title"


@pytest.mark.asyncio
async def test_order_view_is_owner_only(store, transitions, approved):
    order, _ = approved

    view = await transitions.get_order_view(order.user_id, order.id)
    assert [ly.version for ly in view.lyrics] == [1, 2]
    assert view.track is None

    with pytest.raises(NotFoundOrForbidden):
        await transitions.get_order_view(uuid4(), order.id)
