"""Tests for the persistence fallback chain and the backup email log."""

import json

import httpx
import pytest

from src.models.user import User
from src.services.email_log import EmailLog
from src.services.persistence import (
    ConflictUpdateStrategy,
    EmailLogStrategy,
    PersistenceChain,
    PersistRequest,
    PersistResult,
    PersistStrategy,
    SecondaryInsertStrategy,
    StoreDowngradeStrategy,
    StoreInsertStrategy,
    is_valid_email,
)
from src.services.user_store import UserStore


class RecordingStrategy(PersistStrategy):
    """Strategy returning a fixed result and remembering what it saw."""

    def __init__(self, name: str, result: PersistResult | None = None, error=None) -> None:
        self.name = name
        self.result = result
        self.error = error
        self.seen: list[PersistResult | None] = []

    async def attempt(self, request, previous):
        self.seen.append(previous)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def store(db):
    return UserStore(db)


@pytest.fixture
def email_log(tmp_path):
    return EmailLog(tmp_path / "emails.log")


@pytest.mark.parametrize(
    ("email", "valid"),
    [
        ("user@example.com", True),
        ("first.last+tag@sub.example.co", True),
        ("", False),
        (None, False),
        ("no-at-sign.com", False),
        ("two@@example.com", False),
        ("space in@example.com", False),
        ("user@nodot", False),
    ],
)
def test_is_valid_email(email, valid):
    assert is_valid_email(email) is valid


def test_revoke_request_marks_cancellation():
    request = PersistRequest.revoke("a@example.com", "customer.subscription.deleted")
    assert request.is_pro is False
    assert request.event_type == "customer.subscription.deleted_cancellation"


@pytest.mark.asyncio
async def test_insert_creates_pro_user(store, db):
    result = await StoreInsertStrategy(store).attempt(
        PersistRequest.grant("new@example.com", "charge.succeeded", "Ada"), None
    )
    assert result.success
    assert result.data.is_pro is True
    user = db.query(User).filter(User.email == "new@example.com").one()
    assert user.first_name == "Ada"


@pytest.mark.asyncio
async def test_insert_reports_conflict(store):
    store.create("dupe@example.com")
    result = await StoreInsertStrategy(store).attempt(
        PersistRequest.grant("dupe@example.com", "charge.succeeded"), None
    )
    assert not result.success
    assert result.conflict is True


@pytest.mark.asyncio
async def test_update_only_runs_after_conflict(store):
    store.create("user@example.com")
    request = PersistRequest.grant("user@example.com", "charge.succeeded", "Bo")
    strategy = ConflictUpdateStrategy(store)

    skipped = await strategy.attempt(request, PersistResult.failed("insert", "down"))
    assert not skipped.success
    assert store.get_by_email("user@example.com").is_pro is False

    result = await strategy.attempt(request, PersistResult.failed("insert", "dup", conflict=True))
    assert result.success
    store.db.expire_all()
    user = store.get_by_email("user@example.com")
    assert user.is_pro is True
    assert user.first_name == "Bo"


@pytest.mark.asyncio
async def test_update_keeps_name_when_none_given(store):
    store.create("user@example.com", first_name="Existing")
    request = PersistRequest.grant("user@example.com", "invoice.payment_succeeded")
    await ConflictUpdateStrategy(store).attempt(
        request, PersistResult.failed("insert", "dup", conflict=True)
    )
    store.db.expire_all()
    assert store.get_by_email("user@example.com").first_name == "Existing"


@pytest.mark.asyncio
async def test_update_fails_when_no_row_matches(store):
    result = await ConflictUpdateStrategy(store).attempt(
        PersistRequest.grant("gone@example.com", "charge.succeeded"),
        PersistResult.failed("insert", "dup", conflict=True),
    )
    assert not result.success


@pytest.mark.asyncio
async def test_downgrade_succeeds_without_matching_row(store):
    result = await StoreDowngradeStrategy(store).attempt(
        PersistRequest.revoke("nobody@example.com", "customer.subscription.deleted"), None
    )
    assert result.success
    assert store.count() == 0


@pytest.mark.asyncio
async def test_secondary_insert_posts_to_direct_insert():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": {"email": "x@example.com"}})

    strategy = SecondaryInsertStrategy(
        "https://app.example.com/", "internal-token", transport=httpx.MockTransport(handler)
    )
    result = await strategy.attempt(PersistRequest.grant("x@example.com", "charge.succeeded"), None)

    assert result.success
    assert str(requests[0].url) == "https://app.example.com/api/direct-insert"
    assert json.loads(requests[0].content) == {"email": "x@example.com", "isPro": True}
    assert requests[0].headers["Authorization"] == "Bearer internal-token"


@pytest.mark.asyncio
async def test_secondary_insert_reports_endpoint_failure():
    body = {"success": False, "error": "Direct insert failed"}
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json=body))
    strategy = SecondaryInsertStrategy("https://app.example.com", "tok", transport=transport)
    result = await strategy.attempt(PersistRequest.grant("x@example.com", "charge.succeeded"), None)
    assert not result.success
    assert result.reason == "Direct insert failed"


@pytest.mark.asyncio
async def test_secondary_insert_reports_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    strategy = SecondaryInsertStrategy(
        "https://app.example.com", "tok", transport=httpx.MockTransport(handler)
    )
    result = await strategy.attempt(PersistRequest.grant("x@example.com", "charge.succeeded"), None)
    assert not result.success


@pytest.mark.asyncio
async def test_secondary_insert_skipped_without_token():
    requests: list[httpx.Request] = []
    transport = httpx.MockTransport(lambda request: requests.append(request))

    strategy = SecondaryInsertStrategy("https://app.example.com", None, transport=transport)
    result = await strategy.attempt(PersistRequest.grant("x@example.com", "charge.succeeded"), None)

    assert not result.success
    assert requests == []


@pytest.mark.asyncio
async def test_chain_stops_at_first_success():
    first = RecordingStrategy("first", PersistResult.failed("first", "nope", conflict=True))
    second = RecordingStrategy("second", PersistResult.ok("second"))
    third = RecordingStrategy("third", PersistResult.ok("third"))

    result = await PersistenceChain([first, second, third]).run(
        PersistRequest.grant("a@example.com", "charge.succeeded")
    )

    assert result.stage == "second"
    assert second.seen[0].conflict is True
    assert third.seen == []


@pytest.mark.asyncio
async def test_chain_treats_exception_as_stage_failure(email_log):
    broken = RecordingStrategy("broken", error=RuntimeError("boom"))
    chain = PersistenceChain([broken, EmailLogStrategy(email_log)])

    result = await chain.run(PersistRequest.grant("a@example.com", "charge.succeeded"))

    assert result.success
    assert result.stage == "email_log"
    assert len(email_log.read()) == 1


@pytest.mark.asyncio
async def test_chain_rejects_invalid_email(email_log):
    strategy = RecordingStrategy("any", PersistResult.ok("any"))
    result = await PersistenceChain([strategy, EmailLogStrategy(email_log)]).run(
        PersistRequest.grant("not-an-email", "charge.succeeded")
    )
    assert not result.success
    assert strategy.seen == []
    assert email_log.read() is None


@pytest.mark.asyncio
async def test_chain_returns_last_failure():
    chain = PersistenceChain(
        [
            RecordingStrategy("a", PersistResult.failed("a", "first")),
            RecordingStrategy("b", PersistResult.failed("b", "second")),
        ]
    )
    result = await chain.run(PersistRequest.grant("a@example.com", "charge.succeeded"))
    assert not result.success
    assert result.reason == "second"


def test_email_log_append_and_read(email_log):
    assert email_log.read() is None

    email_log.append("one@example.com", "charge.succeeded")
    email_log.append("two@example.com", "customer.subscription.deleted_cancellation", False)

    lines = email_log.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert set(first) == {"email", "eventType", "timestamp", "isPro"}
    assert first["timestamp"].endswith("Z")

    entries = email_log.read()
    assert [e.email for e in entries] == ["one@example.com", "two@example.com"]
    assert entries[1].is_pro is False


def test_email_log_skips_malformed_lines(email_log):
    email_log.append("good@example.com", "charge.succeeded")
    with email_log.path.open("a", encoding="utf-8") as f:
        f.write("not json\n")
        f.write('{"email": "missing-fields@example.com"}\n')
    email_log.append("also-good@example.com", "charge.succeeded")

    assert [e.email for e in email_log.read()] == ["good@example.com", "also-good@example.com"]
