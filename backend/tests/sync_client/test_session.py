import asyncio
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import register_and_login
from diagrams.domain.outcomes import Committed, Conflicted, InSync
from diagrams.domain.permissions import PermissionLevel
from main import app
from shared.dependencies import get_lock_manager
from shared.exceptions import (
    AlreadySharedError,
    AuthorizationError,
    LockTimeoutError,
    NotFoundError,
    UnknownGranteeError,
)
from shared.infrastructure.locks import LocalLockManager
from sync_client.api import DiagramApiClient
from sync_client.session import (
    EditingSession,
    PendingConflictError,
    Resolution,
    UnsavedChangesError,
)


class RecordingListener:
    def __init__(self):
        self.stale = []
        self.conflicts = []
        self.lost = []

    def on_stale(self, notice):
        self.stale.append(notice)

    def on_conflict(self, conflict):
        self.conflicts.append(conflict)

    def on_access_lost(self, document_id, error):
        self.lost.append((document_id, error))


async def api_for(client, username):
    headers, user_id = await register_and_login(client, username)
    http = AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", headers=headers
    )
    return DiagramApiClient(http), UUID(user_id)


@pytest.fixture
async def alice(client):
    api, user_id = await api_for(client, "alice")
    yield api, user_id
    await api.http.aclose()


@pytest.fixture
async def bob(client):
    api, user_id = await api_for(client, "bob")
    yield api, user_id
    await api.http.aclose()


@pytest.fixture
async def diagram(alice, bob):
    alice_api, _ = alice
    _, bob_id = bob
    diagram = await alice_api.create({"name": "ERD", "tables": []})
    await alice_api.grant(diagram.id, bob_id, PermissionLevel.EDITOR)
    return diagram


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
async def session(alice, diagram, listener):
    api, _ = alice
    session = await EditingSession.open(api, diagram.id, listener=listener, poll_interval=0.01)
    yield session
    await session.stop_polling()


async def remote_edit(bob, diagram, version, payload):
    api, _ = bob
    outcome = await api.mutate(diagram.id, version, payload)
    assert isinstance(outcome, Committed)
    return outcome


async def test_open_session(session, diagram):
    assert session.document_id == diagram.id
    assert session.synced.version == 1
    assert session.synced.is_shared is True
    assert not session.dirty


async def test_save_commits(session):
    session.edit({"name": "ERD", "tables": ["users"]})
    outcome = await session.save()

    assert isinstance(outcome, Committed)
    assert outcome.version == 2
    assert session.synced.version == 2
    assert not session.dirty


async def test_save_without_edits(session):
    assert await session.save() is None


async def test_poll_reports_remote_change_once(session, bob, diagram, listener):
    assert await session.poll_once() is None

    session.edit({"name": "local"})
    await remote_edit(bob, diagram, 1, {"name": "remote"})

    notice = await session.poll_once()
    assert notice.synced_version == 1
    assert notice.remote.version == 2
    assert notice.remote.last_modified_by == bob[1]
    assert await session.poll_once() is notice
    assert listener.stale == [notice]
    assert session.local_payload == {"name": "local"}
    assert session.synced.version == 1


async def test_background_polling(session, bob, diagram, listener):
    session.start_polling()
    await remote_edit(bob, diagram, 1, {"name": "remote"})

    for _ in range(200):
        if listener.stale:
            break
        await asyncio.sleep(0.01)

    await session.stop_polling()
    assert listener.stale[0].remote.version == 2


async def test_save_conflict(session, bob, diagram, listener):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})

    outcome = await session.save()

    assert isinstance(outcome, Conflicted)
    assert outcome.current.version == 2
    assert outcome.current.last_modified_by == bob[1]
    assert session.conflict.remote.payload == {"name": "remote"}
    assert session.conflict.local_payload == {"name": "local"}
    assert listener.conflicts == [session.conflict]

    with pytest.raises(PendingConflictError):
        await session.save()


async def test_keep_remote(session, bob, diagram):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})
    await session.save()

    assert await session.resolve(Resolution.KEEP_REMOTE) is None
    assert session.conflict is None
    assert not session.dirty
    assert session.synced.version == 2
    assert session.synced.payload == {"name": "remote"}


async def test_keep_local(session, bob, diagram, alice):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})
    await session.save()

    outcome = await session.resolve(Resolution.KEEP_LOCAL)

    assert isinstance(outcome, Committed)
    assert outcome.version == 3
    assert session.synced.payload == {"name": "local"}
    assert session.conflict is None
    stored = await alice[0].get(diagram.id)
    assert stored.payload == {"name": "local"}
    assert stored.last_modified_by == alice[1]


async def test_keep_local_conflicts_again(session, bob, diagram, listener):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})
    await session.save()
    await remote_edit(bob, diagram, 2, {"name": "remote again"})

    outcome = await session.resolve("keep-local")

    assert isinstance(outcome, Conflicted)
    assert outcome.current.version == 3
    assert session.conflict.remote.payload == {"name": "remote again"}
    assert session.conflict.local_payload == {"name": "local"}
    assert len(listener.conflicts) == 2


async def test_defer(session, bob, diagram):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})
    await session.save()
    conflict = session.conflict

    assert await session.resolve(Resolution.DEFER) is None
    assert session.conflict is conflict
    assert session.local_payload == {"name": "local"}
    assert session.synced.version == 1


async def test_resolve_without_conflict(session):
    assert await session.resolve(Resolution.KEEP_LOCAL) is None


async def test_reload(session, bob, diagram):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})

    with pytest.raises(UnsavedChangesError):
        await session.reload()

    reloaded = await session.reload(discard_local=True)
    assert reloaded.version == 2
    assert not session.dirty


async def test_client_check_sync(alice, bob, diagram):
    api, _ = alice
    assert await api.check_sync(diagram.id, 1) == InSync(1)
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    outcome = await api.check_sync(diagram.id, 1)
    assert isinstance(outcome, Conflicted)
    assert outcome.current.payload == {"name": "remote"}


async def test_client_shares(alice, bob, diagram):
    api, _ = alice
    _, bob_id = bob

    [entry] = await api.list_shares(diagram.id)
    assert entry.grantee_id == bob_id
    assert entry.level is PermissionLevel.EDITOR

    updated = await api.update_share(diagram.id, bob_id, PermissionLevel.VIEWER)
    assert updated.level is PermissionLevel.VIEWER

    [shared] = await bob[0].shared_with_me()
    assert shared.diagram.id == diagram.id
    assert shared.level is PermissionLevel.VIEWER

    await api.revoke(diagram.id, bob_id)
    assert await api.list_shares(diagram.id) == []


async def test_client_error_mapping(alice, bob, diagram):
    api, _ = alice
    bob_api, bob_id = bob

    with pytest.raises(NotFoundError):
        await api.get(uuid4())
    with pytest.raises(AlreadySharedError):
        await api.grant(diagram.id, bob_id, PermissionLevel.VIEWER)
    with pytest.raises(UnknownGranteeError):
        await api.grant(diagram.id, uuid4(), PermissionLevel.VIEWER)
    with pytest.raises(AuthorizationError):
        await bob_api.delete(diagram.id)

    await api.delete(diagram.id)
    with pytest.raises(NotFoundError):
        await bob_api.get(diagram.id)


async def test_client_lookup_user(alice, bob):
    api, _ = alice
    assert await api.lookup_user("bob@example.com") == bob[1]
    with pytest.raises(NotFoundError):
        await api.lookup_user("nobody@example.com")


async def wait_for(condition, attempts=200):
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0.01)


async def test_polling_stops_when_access_is_revoked(alice, bob, diagram):
    alice_api, _ = alice
    bob_api, bob_id = bob
    listener = RecordingListener()
    session = await EditingSession.open(bob_api, diagram.id, listener=listener, poll_interval=0.01)
    poller = session.start_polling()

    await alice_api.revoke(diagram.id, bob_id)
    await wait_for(poller.done)

    assert poller.done()
    assert poller.exception() is None
    [(document_id, error)] = listener.lost
    assert document_id == diagram.id
    assert isinstance(error, AuthorizationError)
    assert session.access_lost is error
    await session.stop_polling()


async def test_polling_stops_when_diagram_is_deleted(session, alice, diagram, listener):
    poller = session.start_polling()
    await alice[0].delete(diagram.id)
    await wait_for(poller.done)

    assert isinstance(listener.lost[0][1], NotFoundError)
    await session.stop_polling()


async def test_polling_survives_transient_errors(session, bob, diagram, listener, monkeypatch):
    calls = []
    peek = session.api.peek_version

    async def flaky(document_id):
        calls.append(document_id)
        if len(calls) == 1:
            raise LockTimeoutError(str(document_id), 1.0)
        return await peek(document_id)

    monkeypatch.setattr(session.api, "peek_version", flaky)
    session.start_polling()
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    await wait_for(lambda: listener.stale)

    await session.stop_polling()
    assert len(calls) >= 2
    assert listener.stale[0].remote.version == 2
    assert listener.lost == []


async def test_keep_local_lock_timeout_keeps_conflict(session, bob, diagram):
    await remote_edit(bob, diagram, 1, {"name": "remote"})
    session.edit({"name": "local"})
    await session.save()
    conflict = session.conflict

    short = LocalLockManager(timeout=0.05)
    app.dependency_overrides[get_lock_manager] = lambda: short
    async with short.hold(diagram.id):
        with pytest.raises(LockTimeoutError):
            await session.resolve(Resolution.KEEP_LOCAL)

    assert session.conflict is conflict
    assert session.local_payload == {"name": "local"}

    outcome = await session.resolve(Resolution.KEEP_LOCAL)
    assert isinstance(outcome, Committed)
    assert outcome.version == 3
    assert session.conflict is None
