"""Mail sender tests — templates, preferences, best-effort bulk delivery."""

import pytest
from structlog.testing import capture_logs

from eisenhower.services.mail import LogTransport, MailError, MailSender, load_template

from conftest import RecordingTransport, make_user


# ═══════════════════════════════════════════════════════════
# Templates and single sends
# ═══════════════════════════════════════════════════════════


def test_load_template():
    subject, message = load_template("welcome")
    assert subject.startswith("Welcome to Eisenhower")
    assert "{{ website }}" in message


def test_unknown_template():
    with pytest.raises(MailError, match="Unknown email template 'nope'"):
        load_template("nope")


@pytest.mark.asyncio
async def test_send_renders_for_recipient(db_session, alice):
    transport = RecordingTransport()
    await MailSender(db_session, transport).send(alice.id, "welcome")

    (sent,) = transport.sent
    assert sent.to_address == "alice@example.com"
    assert sent.to_name == "Alice"
    assert sent.subject == "Welcome to Eisenhower, Alice"
    assert sent.text.startswith("Hi Alice,")
    assert "http://localhost:8000" in sent.text


@pytest.mark.asyncio
async def test_send_raw_templates_the_subject(db_session, alice):
    transport = RecordingTransport()
    await MailSender(db_session, transport).send_raw(
        alice.id, "News for {{ user.name }}", "Hello {{ user.email }}"
    )
    assert transport.sent[0].subject == "News for Alice"
    assert transport.sent[0].text == "Hello alice@example.com"


@pytest.mark.asyncio
async def test_send_to_missing_user(db_session):
    with pytest.raises(MailError, match="User not found"):
        await MailSender(db_session, RecordingTransport()).send(999, "welcome")


@pytest.mark.asyncio
async def test_opted_out_user_refused(db_session):
    quiet = await make_user(db_session, "quiet@example.com", send_notifications=False)
    transport = RecordingTransport()
    with pytest.raises(MailError, match="not accepting email"):
        await MailSender(db_session, transport).send(quiet.id, "welcome")
    assert transport.sent == []


@pytest.mark.asyncio
async def test_log_transport_only_logs(db_session, alice):
    with capture_logs() as logs:
        message_id = await MailSender(db_session, LogTransport()).send(alice.id, "welcome")
    assert message_id.endswith("@eisenhower.local>")
    assert any(e["event"] == "mail.logged" for e in logs)


# ═══════════════════════════════════════════════════════════
# Bulk
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_bulk_failures_do_not_stop_siblings(db_session, alice, bob):
    quiet = await make_user(db_session, "quiet@example.com", send_notifications=False)
    transport = RecordingTransport()
    transport.refuse.add("bob@example.com")

    result = await MailSender(db_session, transport).send_bulk(
        [alice.id, bob.id, quiet.id, 999, alice.id], "welcome"
    )

    assert result.sent == [alice.id]
    assert dict(result.errors) == {
        bob.id: "relay refused bob@example.com",
        999: "User not found",
    }
    assert [m.to_address for m in transport.sent] == ["alice@example.com"]


@pytest.mark.asyncio
async def test_bulk_with_no_recipients(db_session):
    result = await MailSender(db_session, RecordingTransport()).send_bulk_raw([], "s", "m")
    assert result.sent == [] and result.errors == []


# ═══════════════════════════════════════════════════════════
# Admin endpoint
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_bulk_email(client, db_session, alice, bob, admin, auth, mail):
    await make_user(db_session, "quiet@example.com", send_notifications=False)
    mail.refuse.add("bob@example.com")

    r = await client.post(
        "/api/admin/email",
        json={"subject": "Maintenance", "message": "Hi {{ user.name }}, back soon."},
        headers=auth(admin),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["sent"] == [alice.id, admin.id]
    assert body["errors"] == [
        {"userId": bob.id, "message": "relay refused bob@example.com"}
    ]
    assert sorted(m.text for m in mail.sent) == ["Hi Admin, back soon.", "Hi Alice, back soon."]


@pytest.mark.asyncio
async def test_bulk_email_admin_only(client, alice, auth):
    r = await client.post(
        "/api/admin/email",
        json={"subject": "Spam", "message": "Buy now"},
        headers=auth(alice),
    )
    assert r.status_code == 403
