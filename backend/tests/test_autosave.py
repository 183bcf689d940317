from pressroom.core.autosave import AutosaveBuffer
from pressroom.core.draft_repository import draft_repository
from pressroom.core.review_gate import review_gate
from pressroom.schemas.draft import DraftUpdate


async def test_staged_edits_merge_and_flush():
    draft = await draft_repository.create("u1")
    buffer = AutosaveBuffer()

    buffer.stage(draft.id, "u1", DraftUpdate(title="First"))
    buffer.stage(draft.id, "u1", DraftUpdate(content_html="<p>body</p>"))
    buffer.stage(draft.id, "u1", DraftUpdate(title="Second"))
    assert buffer.pending_count == 1

    assert await buffer.flush() == 1
    saved = await draft_repository.get(draft.id)
    assert saved.title == "Second"
    assert saved.content_html == "<p>body</p>"
    assert buffer.pending_count == 0


async def test_discard_drops_pending_edit():
    draft = await draft_repository.create("u1")
    buffer = AutosaveBuffer()
    buffer.stage(draft.id, "u1", DraftUpdate(title="Unsaved"))

    buffer.discard(draft.id)

    assert await buffer.flush() == 0
    assert (await draft_repository.get(draft.id)).title == ""


async def test_flush_against_frozen_draft_is_dropped():
    draft = await draft_repository.create("u1", DraftUpdate(title="T", content_html="<p>b</p>"))
    buffer = AutosaveBuffer()
    buffer.stage(draft.id, "u1", DraftUpdate(title="Late edit"))
    await review_gate.submit(draft.id, "u1")

    assert await buffer.flush() == 0
    assert buffer.pending_count == 0
    assert (await draft_repository.get(draft.id)).title == "T"


async def test_start_and_shutdown_flushes_remaining():
    draft = await draft_repository.create("u1")
    buffer = AutosaveBuffer(interval_seconds=3600)
    buffer.start()
    assert buffer.scheduler.get_job("autosave_flush") is not None

    buffer.stage(draft.id, "u1", DraftUpdate(title="On shutdown"))
    await buffer.shutdown()

    assert (await draft_repository.get(draft.id)).title == "On shutdown"
