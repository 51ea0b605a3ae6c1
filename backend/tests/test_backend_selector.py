"""
Tests for backend selection and ephemeral -> durable migration
"""
from datetime import datetime

import httpx
import pytest

from resumesync.config import CONTENT_KEY, DB_ONLY_MODE_KEY
from resumesync.models.document import CanonicalDocument, Identity
from resumesync.models.enums import MigrationOutcome, NotificationKind, SelectorState
from resumesync.services.backend_selector import BackendSelector, migration_title
from resumesync.services.durable_backend import DurableBackend
from resumesync.services.ephemeral_backend import EphemeralBackend
from resumesync.services.notifications import NotificationBus
from resumesync.services.session_markers import SessionMarkers

BASE_URL = "http://testserver"
JANE = CanonicalDocument(identity=Identity(name="Jane Doe", email="jane@example.com"), narrative="ICU nurse")


def failing_transport(calls):
    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"error": "Service unavailable"})
    return httpx.MockTransport(handler)


def make_selector(storage, identity, transport, max_attempts=3, context_id="ctx_a"):
    markers = SessionMarkers(storage, context_id)
    selector = BackendSelector(
        EphemeralBackend(storage, context_id=context_id),
        DurableBackend(identity, base_url=BASE_URL, transport=transport, read_retries=0),
        identity,
        markers,
        notifications=NotificationBus(),
        max_attempts=max_attempts,
    )
    events = []
    selector.notifications.subscribe(events.append)
    return selector, events


class TestMigrationTitle:
    """Test titles given to migrated documents"""

    def test_with_name(self):
        """Test the first name is used when present"""
        assert migration_title(JANE, datetime(2024, 3, 5)) == "Jane's Resume"

    def test_without_name(self):
        """Test the date fallback"""
        doc = CanonicalDocument(identity=Identity())
        assert migration_title(doc, datetime(2024, 3, 5)) == "Resume - Mar 5, 2024"


class TestResolve:
    """Test initial backend choice"""

    @pytest.mark.asyncio
    async def test_anonymous(self, storage, signed_out, flask_transport):
        """Test anonymous sessions use local storage"""
        selector, _ = make_selector(storage, signed_out, flask_transport)
        assert await selector.resolve() == SelectorState.EPHEMERAL_ONLY
        assert selector.active_backend is selector.ephemeral
        assert not selector.migration_outstanding

    @pytest.mark.asyncio
    async def test_signed_in_without_local_content(self, storage, signed_in, flask_transport):
        """Test signed-in sessions with nothing local go straight to durable"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        assert await selector.resolve() == SelectorState.DURABLE_ONLY
        assert selector.active_backend is selector.durable
        assert selector.last_outcome is None

    @pytest.mark.asyncio
    async def test_db_only_mode_skips_migration(self, storage, signed_in, flask_transport):
        """Test a recorded durable-only mode wins over leftover local content"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        storage.set(DB_ONLY_MODE_KEY, True)
        assert await selector.resolve() == SelectorState.DURABLE_ONLY
        assert selector.last_outcome is None
        assert selector.ephemeral.has_content()

    @pytest.mark.asyncio
    async def test_needs_migration_flag_without_content(self, storage, signed_in, flask_transport):
        """Test a leftover failure flag is settled by a NO_DATA transfer"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        selector.markers.record_migration_failure()
        assert await selector.resolve() == SelectorState.DURABLE_ONLY
        assert selector.last_outcome == MigrationOutcome.NO_DATA
        assert not selector.markers.needs_migration()


class TestMigration:
    """Test the one-time transfer"""

    @pytest.mark.asyncio
    async def test_migrates_on_resolve(self, storage, signed_in, flask_transport):
        """Test local content is moved and the slot cleared"""
        selector, events = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        states = []
        selector.subscribe(states.append)

        assert await selector.resolve() == SelectorState.DURABLE_ONLY
        assert selector.last_outcome == MigrationOutcome.SUCCESS
        assert states == [SelectorState.MIGRATION_PENDING, SelectorState.MIGRATING, SelectorState.DURABLE_ONLY]

        metas = (await selector.durable.list()).value
        assert [m.title for m in metas] == ["Jane's Resume"]
        assert selector.markers.current_id() == metas[0].id
        assert (await selector.durable.load(metas[0].id)).value.content == JANE
        assert not selector.ephemeral.has_content()
        assert selector.markers.migration_completed()
        assert [e.kind for e in events] == [NotificationKind.MIGRATION_SUCCEEDED]

    @pytest.mark.asyncio
    async def test_title_made_unique(self, storage, signed_in, flask_transport, client, auth_headers):
        """Test an existing remote title gets a suffix"""
        client.post('/api/resume/save', headers=auth_headers, json={
            'resumeData': {'identity': {}}, 'resumeName': "Jane's Resume",
        })
        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        await selector.resolve()
        titles = sorted(m.title for m in (await selector.durable.list()).value)
        assert titles == ["Jane's Resume", "Jane's Resume (2)"]

    @pytest.mark.asyncio
    async def test_at_most_once(self, storage, signed_in, flask_transport):
        """Test later triggers never create a second remote copy"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        await selector.resolve()

        await selector.ephemeral.save(JANE)
        assert await selector.migrate() == MigrationOutcome.ALREADY_DURABLE
        assert await selector.check_migration() is None
        assert await selector.on_auth_changed(True) == SelectorState.DURABLE_ONLY
        assert len((await selector.durable.list()).value) == 1

    @pytest.mark.asyncio
    async def test_sign_in_triggers_migration(self, storage, signed_out, flask_transport):
        """Test signing in mid-session migrates local work"""
        selector, _ = make_selector(storage, signed_out, flask_transport)
        await selector.resolve()
        await selector.ephemeral.save(JANE)

        signed_out.sign_in('test-user-id', 'test-token')
        await selector.wait_idle()

        assert selector.state == SelectorState.DURABLE_ONLY
        assert selector.last_outcome == MigrationOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_sign_out_returns_to_local(self, storage, signed_in, flask_transport):
        """Test signing out clears durable-only mode"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        await selector.resolve()
        assert selector.markers.durable_only()

        signed_in.sign_out()
        await selector.wait_idle()
        assert selector.state == SelectorState.EPHEMERAL_ONLY
        assert selector.active_backend is selector.ephemeral
        assert not selector.markers.durable_only()

    @pytest.mark.asyncio
    async def test_sign_out_forgets_remote_id(self, storage, signed_in, flask_transport):
        """Test local saves after sign-out get a local id, not the migrated remote one"""
        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        await selector.resolve()
        remote_id = selector.markers.current_id()
        assert remote_id and not remote_id.startswith("local_")

        signed_in.sign_out()
        await selector.wait_idle()
        assert selector.markers.current_id() is None

        saved = await selector.ephemeral.save(JANE)
        assert saved.value.id.startswith("local_")
        assert selector.markers.current_id() == saved.value.id

    @pytest.mark.asyncio
    async def test_unreadable_local_content(self, storage, signed_in, flask_transport):
        """Test NO_DATA when the local slot cannot be read"""
        storage.set(CONTENT_KEY, {"positions": "not a list"})
        selector, _ = make_selector(storage, signed_in, flask_transport)
        assert await selector.resolve() == SelectorState.DURABLE_ONLY
        assert selector.last_outcome == MigrationOutcome.NO_DATA
        assert not selector.markers.migration_completed()

    @pytest.mark.asyncio
    async def test_migration_not_authenticated(self, storage, signed_out, flask_transport):
        """Test a direct migrate() call while anonymous"""
        selector, _ = make_selector(storage, signed_out, flask_transport)
        await selector.ephemeral.save(JANE)
        assert await selector.migrate() == MigrationOutcome.NOT_AUTHENTICATED


class TestMigrationFailure:
    """Test failed transfers and the attempt ceiling"""

    @pytest.mark.asyncio
    async def test_failure_keeps_local_copy(self, storage, signed_in):
        """Test a failed transfer leaves local content and counts the attempt"""
        selector, events = make_selector(storage, signed_in, failing_transport([]))
        await selector.ephemeral.save(JANE)

        assert await selector.resolve() == SelectorState.MIGRATION_FAILED
        assert selector.last_outcome == MigrationOutcome.FAILED
        assert selector.active_backend is selector.ephemeral
        assert selector.ephemeral.has_content()
        assert selector.markers.migration_attempts() == 1
        assert selector.migration_outstanding
        assert [e.kind for e in events] == [NotificationKind.MIGRATION_FAILED]
        assert not selector.markers.migration_completed()

    @pytest.mark.asyncio
    async def test_ceiling(self, storage, signed_in):
        """Test automatic attempts stop at the ceiling"""
        calls = []
        selector, events = make_selector(storage, signed_in, failing_transport(calls), max_attempts=2)
        await selector.ephemeral.save(JANE)

        await selector.resolve()
        assert await selector.check_migration() == MigrationOutcome.FAILED
        assert selector.migration_exhausted
        assert NotificationKind.MIGRATION_EXHAUSTED in [e.kind for e in events]

        made = len(calls)
        assert await selector.check_migration() == MigrationOutcome.EXHAUSTED
        assert len(calls) == made
        assert selector.state == SelectorState.MIGRATION_FAILED

    @pytest.mark.asyncio
    async def test_manual_retry_after_ceiling(self, storage, signed_in, flask_transport):
        """Test a manual retry resets the counter and can succeed"""
        selector, _ = make_selector(storage, signed_in, failing_transport([]), max_attempts=1)
        await selector.ephemeral.save(JANE)
        await selector.resolve()
        assert selector.migration_exhausted

        selector.durable.transport = flask_transport
        assert await selector.retry_migration() == MigrationOutcome.SUCCESS
        assert selector.state == SelectorState.DURABLE_ONLY
        assert selector.markers.migration_attempts() == 0

    @pytest.mark.asyncio
    async def test_lock_held_by_another_context(self, storage, signed_in, flask_transport):
        """Test a concurrent context's lock makes this one back off"""
        other = SessionMarkers(storage, "ctx_b")
        assert other.acquire_migration_lock()

        selector, _ = make_selector(storage, signed_in, flask_transport)
        await selector.ephemeral.save(JANE)
        await selector.resolve()

        assert selector.last_outcome == MigrationOutcome.IN_PROGRESS
        assert selector.state == SelectorState.EPHEMERAL_ONLY
        assert (await selector.durable.list()).value == []

    @pytest.mark.asyncio
    async def test_completed_by_another_context(self, storage, signed_in, flask_transport):
        """Test a context whose peer finished the transfer switches to durable"""
        first, _ = make_selector(storage, signed_in, flask_transport, context_id="ctx_a")
        second, _ = make_selector(storage, signed_in, flask_transport, context_id="ctx_b")
        second.markers.acquire_migration_lock()
        await first.ephemeral.save(JANE)

        await first.resolve()
        assert first.state == SelectorState.EPHEMERAL_ONLY
        second.markers.release_migration_lock()

        await second.resolve()
        assert second.state == SelectorState.DURABLE_ONLY
        assert await first.check_migration() == MigrationOutcome.ALREADY_DURABLE
        assert first.state == SelectorState.DURABLE_ONLY
        assert len((await first.durable.list()).value) == 1
