"""End-to-end scenario: admin + alice, one diagnosed leaf, role-filtered history."""
from conftest import BLIGHT, PNG_BYTES, FakeAnalyzer, UnreadableStore
from plant_health.accounts.schemas import Role
from plant_health.analysis.schemas import PipelineState
from plant_health.context import create_context
from plant_health.storage.kv_store import InMemoryStore
from plant_health.views.router import Surface


def test_admin_and_user_scenario():
    store = InMemoryStore()
    ctx = create_context(store=store, analyzer=FakeAnalyzer(result=BLIGHT), timeout=5)

    admin = ctx.session.login("admin@plant.health", "admin123")
    assert admin.role == Role.ADMIN
    assert ctx.surface == Surface.ADMIN
    ctx.session.logout()

    alice = ctx.session.register("alice@x.com", "pw1")
    assert alice.role == Role.USER
    assert ctx.surface == Surface.USER

    ctx.pipeline.select_image(PNG_BYTES, filename="leaf.png")
    snap = ctx.pipeline.start_analysis()
    assert snap.state == PipelineState.SUCCEEDED
    assert snap.result.disease_name == "Blight"
    assert snap.result.confidence_score == 0.92

    records = ctx.history.list_all()
    assert len(records) == 1
    assert records[0].user_email == "alice@x.com"

    assert [r.id for r in ctx.history.list_for_principal(alice)] == [records[0].id]

    ctx.session.logout()
    admin = ctx.session.login("admin@plant.health", "admin123")
    assert [r.id for r in ctx.history.list_for_principal(admin)] == [records[0].id]


def test_restart_restores_session_and_history():
    store = InMemoryStore()
    first = create_context(store=store, analyzer=FakeAnalyzer(), timeout=5)
    first.session.register("alice@x.com", "pw1")
    first.pipeline.select_image(PNG_BYTES, content_type="image/png")
    first.pipeline.start_analysis()

    second = create_context(store=store, analyzer=FakeAnalyzer(), timeout=5)
    assert second.session.current.email == "alice@x.com"
    assert second.surface == Surface.USER
    assert second.history.count() == 1
    assert second.registry.count() == 2
    assert second.pipeline.snapshot().state == PipelineState.IDLE


def test_unreadable_store_does_not_prevent_startup():
    store = UnreadableStore()
    ctx = create_context(store=store, analyzer=FakeAnalyzer(), timeout=5)
    assert ctx.session.current is None
    assert ctx.surface == Surface.AUTH
    assert ctx.history.count() == 0

    admin = ctx.session.login("admin@plant.health", "admin123")
    assert admin.role == Role.ADMIN
    assert ctx.session.register("alice@x.com", "pw1") is None
    assert ctx.session.auth_error is not None

    store.readable = True
    assert ctx.session.register("alice@x.com", "pw1").email == "alice@x.com"
