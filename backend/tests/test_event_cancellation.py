"""Tests for the event cancellation cascade.

Covers:
- Attendee count = CONFIRMED + WAITLISTED immediately before cancellation
- Count is unaffected by notification failures
- Second cancellation fails with InvalidState
- One notice per active attendee, failures isolated per member
- RSVP cancellation on a cancelled event promotes nobody
"""
from tests.conftest import create_test_member, create_test_event, rsvp, cancel_rsvp


def _cancel(client, event_id, actor_id, reason=None):
    body = {"cancelled_by_id": actor_id}
    if reason is not None:
        body["reason"] = reason
    return client.post(f"/api/events/{event_id}/cancel", json=body)


def _event_with_attendees(client, max_capacity=2, confirmed_and_waitlisted=3):
    organizer = create_test_member(client, first_name="Pastor")
    event = create_test_event(client, organizer["member_id"], max_capacity=max_capacity)
    attendees = [create_test_member(client) for _ in range(confirmed_and_waitlisted)]
    for a in attendees:
        rsvp(client, event["event_id"], a["member_id"])
    return organizer, event, attendees


class TestCancellationCascade:
    """Cancel an event and notify its attendees."""

    def test_cancel_reports_attendee_count(self, client, notifier):
        organizer, event, attendees = _event_with_attendees(client)
        resp = _cancel(client, event["event_id"], organizer["member_id"], reason="Snow storm")
        assert resp.status_code == 200
        data = resp.json()
        assert data["affected_attendees"] == 3
        assert data["cancel_reason"] == "Snow storm"
        assert data["message"] == "Event cancelled successfully. 3 attendees will be notified."

        notified = sorted(m for m, _, _ in notifier.cancellations)
        assert notified == sorted(a["member_id"] for a in attendees)
        assert all(reason == "Snow storm" for _, _, reason in notifier.cancellations)

    def test_count_survives_notifier_failure(self, client, notifier):
        """Three active attendees are reported even when every notice raises."""
        organizer, event, _ = _event_with_attendees(client)
        notifier.fail_all = True
        resp = _cancel(client, event["event_id"], organizer["member_id"])
        assert resp.status_code == 200
        assert resp.json()["affected_attendees"] == 3
        assert notifier.cancellations == []

        detail = client.get(f"/api/events/{event['event_id']}").json()
        assert detail["cancelled_at"] is not None

    def test_one_failing_member_does_not_stop_others(self, client, notifier):
        organizer, event, attendees = _event_with_attendees(client)
        notifier.fail_for = {attendees[1]["member_id"]}
        _cancel(client, event["event_id"], organizer["member_id"])

        notified = {m for m, _, _ in notifier.cancellations}
        assert notified == {attendees[0]["member_id"], attendees[2]["member_id"]}

    def test_cancelled_rsvps_are_not_counted(self, client, notifier):
        organizer, event, attendees = _event_with_attendees(client, max_capacity=None)
        cancel_rsvp(client, event["event_id"], attendees[0]["member_id"])

        resp = _cancel(client, event["event_id"], organizer["member_id"])
        assert resp.json()["affected_attendees"] == 2
        assert attendees[0]["member_id"] not in {m for m, _, _ in notifier.cancellations}

    def test_cancel_with_no_attendees(self, client, notifier):
        organizer = create_test_member(client)
        event = create_test_event(client, organizer["member_id"])
        resp = _cancel(client, event["event_id"], organizer["member_id"])
        assert resp.json()["affected_attendees"] == 0
        assert resp.json()["message"] == "Event cancelled successfully. 0 attendees will be notified."
        assert notifier.cancellations == []

    def test_second_cancel_fails(self, client):
        organizer, event, _ = _event_with_attendees(client)
        first = _cancel(client, event["event_id"], organizer["member_id"])
        assert first.status_code == 200

        second = _cancel(client, event["event_id"], organizer["member_id"])
        assert second.status_code == 400
        assert second.json()["reason"] == "cancelled"

    def test_cancel_metadata_persisted(self, client):
        organizer, event, _ = _event_with_attendees(client)
        _cancel(client, event["event_id"], organizer["member_id"], reason="  Pastor is ill  ")
        detail = client.get(f"/api/events/{event['event_id']}").json()
        assert detail["cancelled_by_id"] == organizer["member_id"]
        assert detail["cancel_reason"] == "Pastor is ill"

    def test_reason_too_long(self, client):
        organizer, event, _ = _event_with_attendees(client)
        resp = _cancel(client, event["event_id"], organizer["member_id"], reason="x" * 501)
        assert resp.status_code == 422
        assert resp.json()["reason"] == "reason_too_long"

    def test_unknown_actor(self, client):
        _, event, _ = _event_with_attendees(client)
        resp = _cancel(client, event["event_id"], "nobody")
        assert resp.status_code == 404
        assert resp.json()["reason"] == "member_not_found"
        assert client.get(f"/api/events/{event['event_id']}").json()["cancelled_at"] is None

    def test_missing_event(self, client):
        organizer = create_test_member(client)
        resp = _cancel(client, "missing", organizer["member_id"])
        assert resp.status_code == 404
        assert resp.json()["reason"] == "event_not_found"

    def test_rsvp_cancel_after_event_cancel_does_not_promote(self, client):
        organizer, event, attendees = _event_with_attendees(client, max_capacity=2)
        _cancel(client, event["event_id"], organizer["member_id"])

        resp = cancel_rsvp(client, event["event_id"], attendees[0]["member_id"])
        assert resp.status_code == 200
        assert resp.json()["waitlist_promoted"] is False
        summary = client.get(f"/api/events/{event['event_id']}/rsvps").json()
        assert summary["waitlisted_count"] == 1
