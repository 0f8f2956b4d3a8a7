"""Tests for the event aggregate through the HTTP API.

Covers:
- Creation defaults and validation (scenario D)
- Access by visibility, lookup by share code
- Partial updates, no-op detection, optimistic locking → 409
- Status transitions, re-opened negotiation (scenario F), cancellation
- Membership rules (scenario E) and the single-role endpoint
- Member self-service settings
- Blackout periods, share codes, deletion policy, history, listing
"""
from tests.conftest import DAY_MS, HOUR_MS, create_test_event, create_test_user, future_window


def _url(path: str, actor_id) -> str:
    return f"/api/events{path}?actor_user_id={actor_id}" if actor_id else f"/api/events{path}"


def _patch(client, event_id, actor_id, **fields):
    return client.patch(_url(f"/{event_id}", actor_id), json=fields)


def _get(client, event_id, actor_id=None):
    return client.get(_url(f"/{event_id}", actor_id))


def _setup(client):
    """Owner (original creator), an admin and a participant on one draft event."""
    owner = create_test_user(client, name="Owner")
    admin = create_test_user(client, name="Admin")
    part = create_test_user(client, name="Participant")
    event = create_test_event(client, owner["user_id"], members=[
        {"user_id": owner["user_id"], "role": "creator"},
        {"user_id": admin["user_id"], "role": "admin"},
        {"user_id": part["user_id"], "role": "participant"},
    ])
    return owner, admin, part, event


def _members(event):
    return [(m["user_id"], m["role"]) for m in event["members"]]


def _scheduled_event(client, owner_id, **fields):
    window = future_window()
    return create_test_event(
        client, owner_id, time_window=window, scheduled_time=window["start"] + HOUR_MS, **fields,
    )


class TestEventCreate:
    """Event creation and initial state."""

    def test_create_defaults(self, client):
        owner = create_test_user(client, name="Owner")
        event = create_test_event(client, owner["user_id"], name="  Dinner  ")
        assert event["name"] == "Dinner"
        assert event["description"] == ""
        assert event["status"] == "scheduling"
        assert event["visibility"] == "draft"
        assert event["version"] == 1
        assert event["scheduled_time"] is None
        assert len(event["event_code"]) == 10
        assert event["members"] == [{
            "user_id": owner["user_id"],
            "role": "creator",
            "availability_status": "available",
            "custom_padding_after": None,
        }]

    def test_other_members_start_invited(self, client):
        _, admin, part, event = _setup(client)
        statuses = {m["user_id"]: m["availability_status"] for m in event["members"][1:]}
        assert statuses == {admin["user_id"]: "invited", part["user_id"]: "invited"}

    def test_flexible_with_time_is_scheduled(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"])
        assert event["status"] == "scheduled"

    def test_fixed_with_time_is_confirmed_and_window_cleared(self, client):
        owner = create_test_user(client, name="Owner")
        event = create_test_event(
            client, owner["user_id"],
            scheduling_method="fixed",
            scheduled_time=future_window()["start"],
            blackout_periods=[{"start": 1000, "end": 2000}],
        )
        assert event["status"] == "confirmed"
        assert event["time_window"] is None
        assert event["blackout_periods"] == []

    def test_blackout_periods_stored_merged(self, client):
        owner = create_test_user(client, name="Owner")
        start = future_window()["start"]
        event = create_test_event(client, owner["user_id"], blackout_periods=[
            {"start": start + 200, "end": start + 300},
            {"start": start + 100, "end": start + 200},
        ])
        assert event["blackout_periods"] == [{"start": start + 100, "end": start + 300}]

    def test_time_outside_window_rejected(self, client):
        owner = create_test_user(client, name="Owner")
        window = future_window()
        resp = client.post(_url("/", owner["user_id"]), json={
            "name": "Late",
            "duration": HOUR_MS,
            "time_window": window,
            "scheduled_time": window["end"] - HOUR_MS + 1,
        })
        assert resp.status_code == 400
        assert {e["field"] for e in resp.json()["errors"]} == {"scheduled_time"}

    def test_all_violations_reported(self, client):
        owner = create_test_user(client, name="Owner")
        resp = client.post(_url("/", owner["user_id"]), json={
            "name": "x" * 51,
            "duration": 1000,
            "time_window": {"start": 1, "end": 2},
        })
        assert resp.status_code == 400
        assert {e["field"] for e in resp.json()["errors"]} == {"name", "duration", "time_window"}

    def test_cancelled_initial_status_rejected(self, client):
        owner = create_test_user(client, name="Owner")
        resp = client.post(_url("/", owner["user_id"]), json={
            "name": "Nope", "duration": HOUR_MS, "time_window": future_window(), "status": "cancelled",
        })
        assert resp.status_code == 400

    def test_unknown_member_rejected(self, client):
        owner = create_test_user(client, name="Owner")
        resp = client.post(_url("/", owner["user_id"]), json={
            "name": "Party",
            "duration": HOUR_MS,
            "time_window": future_window(),
            "members": [
                {"user_id": owner["user_id"], "role": "creator"},
                {"user_id": "00000000-0000-0000-0000-000000000000"},
            ],
        })
        assert resp.status_code == 400

    def test_actor_must_be_first_member(self, client):
        owner = create_test_user(client, name="Owner")
        other = create_test_user(client, name="Other")
        resp = client.post(_url("/", owner["user_id"]), json={
            "name": "Party",
            "duration": HOUR_MS,
            "time_window": future_window(),
            "members": [{"user_id": other["user_id"], "role": "creator"}],
        })
        assert resp.status_code == 400

    def test_create_requires_actor(self, client):
        resp = client.post("/api/events/", json={"name": "Anon", "duration": HOUR_MS, "time_window": future_window()})
        assert resp.status_code == 401


class TestEventAccess:
    """Visibility rules and lookup."""

    def test_draft_visible_to_editors_only(self, client):
        owner, admin, part, event = _setup(client)
        assert _get(client, event["event_id"], owner["user_id"]).status_code == 200
        assert _get(client, event["event_id"], admin["user_id"]).status_code == 200
        assert _get(client, event["event_id"], part["user_id"]).status_code == 403

    def test_private_visible_to_members(self, client):
        owner, _, part, event = _setup(client)
        stranger = create_test_user(client, name="Stranger")
        _patch(client, event["event_id"], owner["user_id"], visibility="private")
        assert _get(client, event["event_id"], part["user_id"]).status_code == 200
        assert _get(client, event["event_id"], stranger["user_id"]).status_code == 403

    def test_public_visible_to_everyone(self, client):
        owner, _, _, event = _setup(client)
        _patch(client, event["event_id"], owner["user_id"], visibility="public")
        assert _get(client, event["event_id"]).status_code == 200

    def test_lookup_by_share_code(self, client):
        owner, _, _, event = _setup(client)
        resp = _get(client, event["event_code"], owner["user_id"])
        assert resp.status_code == 200
        assert resp.json()["event_id"] == event["event_id"]

    def test_not_found(self, client):
        owner = create_test_user(client, name="Owner")
        assert _get(client, "no-such-event", owner["user_id"]).status_code == 404


class TestEventUpdate:
    """Partial updates, authorization and optimistic locking."""

    def test_admin_renames(self, client):
        _, admin, _, event = _setup(client)
        resp = _patch(client, event["event_id"], admin["user_id"], name="Brunch", description=" Sunday ")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Brunch"
        assert data["description"] == "Sunday"
        assert data["version"] == 2

    def test_participant_cannot_update(self, client):
        _, _, part, event = _setup(client)
        assert _patch(client, event["event_id"], part["user_id"], name="Mine").status_code == 403

    def test_update_requires_actor(self, client):
        _, _, _, event = _setup(client)
        assert _patch(client, event["event_id"], None, name="Anon").status_code == 401

    def test_update_missing_event(self, client):
        owner = create_test_user(client, name="Owner")
        assert _patch(client, "missing", owner["user_id"], name="X").status_code == 404

    def test_no_op_keeps_version(self, client):
        owner, _, _, event = _setup(client)
        resp = _patch(client, event["event_id"], owner["user_id"], name=event["name"])
        assert resp.status_code == 200
        assert resp.json()["version"] == 1

    def test_version_mismatch_conflicts(self, client):
        owner, _, _, event = _setup(client)
        resp = _patch(client, event["event_id"], owner["user_id"], name="Stale", version=7)
        assert resp.status_code == 409
        assert resp.json()["retryable"] is True

    def test_matching_version_accepted(self, client):
        owner, _, _, event = _setup(client)
        resp = _patch(client, event["event_id"], owner["user_id"], name="Fresh", version=1)
        assert resp.status_code == 200

    def test_invalid_patch_changes_nothing(self, client):
        owner, _, _, event = _setup(client)
        resp = _patch(client, event["event_id"], owner["user_id"], name="Ok", duration=5)
        assert resp.status_code == 400
        current = _get(client, event["event_id"], owner["user_id"]).json()
        assert current["name"] == event["name"]
        assert current["version"] == 1


class TestStatusTransitions:
    """Status machine, re-opened negotiation and cancellation."""

    def test_schedule_and_confirm(self, client):
        owner, _, _, event = _setup(client)
        start = event["time_window"]["start"] + HOUR_MS
        resp = _patch(client, event["event_id"], owner["user_id"], status="scheduled", scheduled_time=start)
        assert resp.json()["status"] == "scheduled"
        resp = _patch(client, event["event_id"], owner["user_id"], status="confirmed")
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"
        assert resp.json()["scheduled_time"] == start

    def test_scheduled_requires_time(self, client):
        owner, _, _, event = _setup(client)
        assert _patch(client, event["event_id"], owner["user_id"], status="scheduled").status_code == 400

    def test_duration_change_reopens_confirmed_event(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"], status="confirmed")
        assert event["status"] == "confirmed"
        resp = _patch(client, event["event_id"], owner["user_id"], duration=2 * HOUR_MS)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "scheduling"
        assert data["scheduled_time"] is None
        assert data["duration"] == 2 * HOUR_MS

    def test_blackout_change_reopens_scheduled_event(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"])
        start = event["time_window"]["start"]
        resp = _patch(
            client, event["event_id"], owner["user_id"],
            blackout_periods=[{"start": start + DAY_MS, "end": start + 2 * DAY_MS}],
        )
        assert resp.json()["status"] == "scheduling"

    def test_time_change_reopens_confirmed_event(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"], status="confirmed")
        resp = _patch(client, event["event_id"], owner["user_id"], scheduled_time=event["scheduled_time"] + HOUR_MS)
        assert resp.status_code == 200
        assert resp.json()["status"] == "scheduling"
        assert resp.json()["scheduled_time"] is None

    def test_confirmed_cannot_stay_confirmed_while_renegotiating(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"], status="confirmed")
        resp = _patch(client, event["event_id"], owner["user_id"], status="confirmed", duration=2 * HOUR_MS)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "status"

    def test_scheduled_cannot_jump_to_confirmed_at_new_time(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"])
        new_time = event["scheduled_time"] + DAY_MS
        resp = _patch(client, event["event_id"], owner["user_id"], status="confirmed", scheduled_time=new_time)
        assert resp.status_code == 400
        current = _get(client, event["event_id"], owner["user_id"]).json()
        assert (current["status"], current["scheduled_time"]) == ("scheduled", event["scheduled_time"])

    def test_reschedule_goes_through_scheduling(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"])
        new_time = event["scheduled_time"] + DAY_MS
        resp = _patch(client, event["event_id"], owner["user_id"], status="scheduled", scheduled_time=new_time)
        assert resp.status_code == 400

        resp = _patch(client, event["event_id"], owner["user_id"], scheduled_time=new_time)
        assert resp.json()["status"] == "scheduling"
        resp = _patch(client, event["event_id"], owner["user_id"], status="scheduled", scheduled_time=new_time)
        assert resp.status_code == 200
        assert resp.json()["status"] == "scheduled"
        assert resp.json()["scheduled_time"] == new_time

    def test_flexible_only_fields_ignored_on_fixed_event(self, client):
        owner = create_test_user(client, name="Owner")
        event = create_test_event(
            client, owner["user_id"], scheduling_method="fixed", scheduled_time=future_window()["start"],
        )
        assert event["status"] == "confirmed"
        start = event["scheduled_time"]
        resp = _patch(
            client, event["event_id"], owner["user_id"],
            preferred_times=[{"start": start, "end": start + HOUR_MS}],
        )
        assert resp.status_code == 200
        data = resp.json()
        assert (data["status"], data["scheduled_time"]) == ("confirmed", start)
        assert data["preferred_times"] == []
        assert data["version"] == 1

    def test_explicit_reopen_clears_time(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"])
        resp = _patch(client, event["event_id"], owner["user_id"], status="scheduling")
        assert resp.json()["status"] == "scheduling"
        assert resp.json()["scheduled_time"] is None

    def test_admin_cancels(self, client):
        _, admin, _, event = _setup(client)
        resp = _patch(client, event["event_id"], admin["user_id"], status="cancelled")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    def test_cancel_with_other_changes_rejected(self, client):
        owner, _, _, event = _setup(client)
        resp = _patch(client, event["event_id"], owner["user_id"], status="cancelled", name="Gone")
        assert resp.status_code == 400

    def test_cancelled_is_terminal(self, client):
        owner, _, part, event = _setup(client)
        _patch(client, event["event_id"], owner["user_id"], status="cancelled")
        assert _patch(client, event["event_id"], owner["user_id"], status="scheduling").status_code == 400
        assert _patch(client, event["event_id"], owner["user_id"], name="Back").status_code == 400
        resp = client.patch(_url(f"/{event['event_id']}/settings", part["user_id"]), json={
            "availability_status": "available",
        })
        assert resp.status_code == 400

    def test_cancelled_checked_before_role(self, client):
        owner, _, part, event = _setup(client)
        _patch(client, event["event_id"], owner["user_id"], status="cancelled")
        resp = _patch(client, event["event_id"], part["user_id"], name="Mine")
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "status"

    def test_visibility_cannot_return_to_draft(self, client):
        owner, _, _, event = _setup(client)
        assert _patch(client, event["event_id"], owner["user_id"], visibility="public").status_code == 200
        assert _patch(client, event["event_id"], owner["user_id"], visibility="private").status_code == 200
        assert _patch(client, event["event_id"], owner["user_id"], visibility="draft").status_code == 400


class TestMembership:
    """Member-list patches through the role governor."""

    def test_admin_cannot_add_creator(self, client):
        _, admin, _, event = _setup(client)
        newcomer = create_test_user(client, name="Newcomer")
        members = [{"user_id": u, "role": r} for u, r in _members(event)]
        members.append({"user_id": newcomer["user_id"], "role": "creator"})
        resp = _patch(client, event["event_id"], admin["user_id"], members=members)
        assert resp.status_code == 403
        assert resp.json()["denied"][0]["user_id"] == newcomer["user_id"]

    def test_admin_demotes_admin(self, client):
        owner, admin, part, event = _setup(client)
        admin2 = create_test_user(client, name="Admin Two")
        members = [{"user_id": u, "role": r} for u, r in _members(event)]
        members.append({"user_id": admin2["user_id"], "role": "admin"})
        assert _patch(client, event["event_id"], owner["user_id"], members=members).status_code == 200

        members[-1]["role"] = "participant"
        resp = _patch(client, event["event_id"], admin["user_id"], members=members)
        assert resp.status_code == 200
        assert _members(resp.json())[-1] == (admin2["user_id"], "participant")

    def test_new_member_settings_default(self, client):
        owner, _, _, event = _setup(client)
        newcomer = create_test_user(client, name="Newcomer")
        members = [{"user_id": u, "role": r} for u, r in _members(event)]
        members.append({"user_id": newcomer["user_id"]})
        resp = _patch(client, event["event_id"], owner["user_id"], members=members)
        added = resp.json()["members"][-1]
        assert added["role"] == "participant"
        assert added["availability_status"] == "invited"

    def test_original_creator_cannot_be_removed(self, client):
        owner, admin, part, event = _setup(client)
        members = [{"user_id": admin["user_id"], "role": "creator"}, {"user_id": part["user_id"], "role": "participant"}]
        assert _patch(client, event["event_id"], owner["user_id"], members=members).status_code == 400

    def test_unknown_user_rejected(self, client):
        owner, _, _, event = _setup(client)
        members = [{"user_id": u, "role": r} for u, r in _members(event)]
        members.append({"user_id": "ghost"})
        assert _patch(client, event["event_id"], owner["user_id"], members=members).status_code == 400

    def test_role_endpoint(self, client):
        owner, admin, part, event = _setup(client)
        url = _url(f"/{event['event_id']}/members/{part['user_id']}/role", owner["user_id"])
        resp = client.put(url, json={"role": "admin"})
        assert resp.status_code == 200
        assert dict(_members(resp.json()))[part["user_id"]] == "admin"

    def test_role_endpoint_admin_cannot_promote(self, client):
        _, admin, part, event = _setup(client)
        url = _url(f"/{event['event_id']}/members/{part['user_id']}/role", admin["user_id"])
        assert client.put(url, json={"role": "admin"}).status_code == 403

    def test_role_endpoint_unknown_member(self, client):
        owner, _, _, event = _setup(client)
        url = _url(f"/{event['event_id']}/members/nobody/role", owner["user_id"])
        assert client.put(url, json={"role": "admin"}).status_code == 404


class TestMemberSettings:
    """Self-service availability and padding."""

    def test_get_and_update_own_settings(self, client):
        _, _, part, event = _setup(client)
        url = _url(f"/{event['event_id']}/settings", part["user_id"])
        assert client.get(url).json()["availability_status"] == "invited"

        resp = client.patch(url, json={"availability_status": "tentative", "custom_padding_after": 15 * 60_000})
        assert resp.status_code == 200
        assert resp.json() == {
            "event_id": event["event_id"],
            "user_id": part["user_id"],
            "availability_status": "tentative",
            "custom_padding_after": 15 * 60_000,
        }

    def test_negative_padding_rejected(self, client):
        _, _, part, event = _setup(client)
        url = _url(f"/{event['event_id']}/settings", part["user_id"])
        assert client.patch(url, json={"custom_padding_after": -1}).status_code == 400

    def test_invalid_availability_rejected(self, client):
        _, _, part, event = _setup(client)
        url = _url(f"/{event['event_id']}/settings", part["user_id"])
        assert client.patch(url, json={"availability_status": "maybe"}).status_code == 400

    def test_non_member_forbidden(self, client):
        _, _, _, event = _setup(client)
        stranger = create_test_user(client, name="Stranger")
        url = _url(f"/{event['event_id']}/settings", stranger["user_id"])
        assert client.get(url).status_code == 403
        assert client.patch(url, json={"availability_status": "available"}).status_code == 403


class TestBlackoutPeriods:
    """Event blackout periods via the interval algebra."""

    def test_add_merges_touching(self, client):
        owner, _, _, event = _setup(client)
        base = event["time_window"]["start"]
        url = _url(f"/{event['event_id']}/blackout-periods", owner["user_id"])
        client.post(url, json={"start": base, "end": base + HOUR_MS})
        resp = client.post(url, json={"start": base + HOUR_MS, "end": base + 2 * HOUR_MS})
        assert resp.status_code == 200
        assert resp.json()["blackout_periods"] == [{"start": base, "end": base + 2 * HOUR_MS}]

    def test_remove_splits(self, client):
        owner, _, _, event = _setup(client)
        base = event["time_window"]["start"]
        client.post(
            _url(f"/{event['event_id']}/blackout-periods", owner["user_id"]),
            json={"start": base, "end": base + 5 * HOUR_MS},
        )
        resp = client.post(
            _url(f"/{event['event_id']}/blackout-periods/remove", owner["user_id"]),
            json={"start": base + 2 * HOUR_MS, "end": base + 3 * HOUR_MS},
        )
        assert resp.json()["blackout_periods"] == [
            {"start": base, "end": base + 2 * HOUR_MS},
            {"start": base + 3 * HOUR_MS, "end": base + 5 * HOUR_MS},
        ]

    def test_invalid_range_rejected(self, client):
        owner, _, _, event = _setup(client)
        url = _url(f"/{event['event_id']}/blackout-periods", owner["user_id"])
        assert client.post(url, json={"start": 500, "end": 100}).status_code == 400

    def test_fixed_event_rejects_blackouts(self, client):
        owner = create_test_user(client, name="Owner")
        event = create_test_event(client, owner["user_id"], scheduling_method="fixed")
        url = _url(f"/{event['event_id']}/blackout-periods", owner["user_id"])
        assert client.post(url, json={"start": 100, "end": 200}).status_code == 400


class TestShareCode:

    def test_regenerate(self, client):
        owner, _, _, event = _setup(client)
        resp = client.post(_url(f"/{event['event_id']}/code", owner["user_id"]))
        assert resp.status_code == 200
        new_code = resp.json()["event_code"]
        assert new_code != event["event_code"]
        assert _get(client, event["event_code"], owner["user_id"]).status_code == 404
        assert _get(client, new_code, owner["user_id"]).status_code == 200

    def test_participant_cannot_regenerate(self, client):
        _, _, part, event = _setup(client)
        assert client.post(_url(f"/{event['event_id']}/code", part["user_id"])).status_code == 403


class TestEventDelete:
    """Deletion: original creator only, before confirmation."""

    def test_original_creator_deletes(self, client, db):
        owner, _, _, event = _setup(client)
        resp = client.delete(_url(f"/{event['event_id']}", owner["user_id"]))
        assert resp.status_code == 204
        assert _get(client, event["event_id"], owner["user_id"]).status_code == 404

        from app.models.event_mutation import ActionType, EventMutation
        actions = {m.action_type for m in db.query(EventMutation).filter_by(event_id=event["event_id"]).all()}
        assert ActionType.delete in actions

    def test_admin_cannot_delete(self, client):
        _, admin, _, event = _setup(client)
        assert client.delete(_url(f"/{event['event_id']}", admin["user_id"])).status_code == 403

    def test_confirmed_event_not_deletable(self, client):
        owner = create_test_user(client, name="Owner")
        event = _scheduled_event(client, owner["user_id"], status="confirmed")
        assert client.delete(_url(f"/{event['event_id']}", owner["user_id"])).status_code == 400


class TestHistory:

    def test_ledger_records_writes(self, client):
        owner, _, _, event = _setup(client)
        _patch(client, event["event_id"], owner["user_id"], name="Renamed")
        _patch(client, event["event_id"], owner["user_id"], status="cancelled")
        resp = client.get(_url(f"/{event['event_id']}/history", owner["user_id"]))
        assert resp.status_code == 200
        rows = resp.json()
        assert sorted(r["action_type"] for r in rows) == ["cancel", "create", "update"]
        cancel = next(r for r in rows if r["action_type"] == "cancel")
        assert (cancel["from_status"], cancel["to_status"]) == ("scheduling", "cancelled")

    def test_participant_cannot_read_history(self, client):
        _, _, part, event = _setup(client)
        assert client.get(_url(f"/{event['event_id']}/history", part["user_id"])).status_code == 403


class TestListEvents:
    """Filtered listing with access rules applied before paging."""

    def test_filters_and_access(self, client):
        owner, admin, part, event = _setup(client)
        other = create_test_user(client, name="Other")
        public = create_test_event(client, other["user_id"], name="Public", visibility="public")
        create_test_event(client, other["user_id"], name="Hidden")

        data = client.get(_url("/", owner["user_id"])).json()
        assert data["total"] == 2
        assert {e["event_id"] for e in data["events"]} == {event["event_id"], public["event_id"]}

        data = client.get(_url("/", part["user_id"]), params={"member_of": part["user_id"]}).json()
        assert data["total"] == 0  # drafts are hidden from participants

        data = client.get(_url("/", owner["user_id"]), params={"admin_of": admin["user_id"]}).json()
        assert [e["event_id"] for e in data["events"]] == [event["event_id"]]

    def test_status_filter(self, client):
        owner = create_test_user(client, name="Owner")
        negotiating = create_test_event(client, owner["user_id"], name="Negotiating")
        _scheduled_event(client, owner["user_id"], name="Scheduled")
        data = client.get(_url("/", owner["user_id"]), params={"status": ["scheduling"]}).json()
        assert [e["event_id"] for e in data["events"]] == [negotiating["event_id"]]

    def test_pagination(self, client):
        owner = create_test_user(client, name="Owner")
        for i in range(3):
            create_test_event(client, owner["user_id"], name=f"Event {i}")
        data = client.get(_url("/", owner["user_id"]), params={"limit": 2, "offset": 2}).json()
        assert data["total"] == 3
        assert len(data["events"]) == 1

    def test_limit_bounds(self, client):
        owner = create_test_user(client, name="Owner")
        assert client.get(_url("/", owner["user_id"]), params={"limit": 0}).status_code == 400
        assert client.get(_url("/", owner["user_id"]), params={"limit": 201}).status_code == 400


class TestAdvisories:

    def test_advisories_for_scheduled_event(self, client):
        owner = create_test_user(client, name="Owner")
        window = future_window()
        start = window["start"] + HOUR_MS
        event = create_test_event(
            client, owner["user_id"],
            time_window=window,
            scheduled_time=start,
            blackout_periods=[{"start": start + HOUR_MS // 2, "end": start + 2 * HOUR_MS}],
            preferred_times=[{"start": window["start"], "end": window["end"]}],
            daily_start_constraints=[{"start": 0, "end": 1440}],
        )
        resp = client.get(_url(f"/{event['event_id']}/advisories", owner["user_id"]), params={"timezone": "UTC"})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["blackout_conflicts"]) == 1
        assert data["in_preferred_time"] is True
        assert data["daily_start_ok"] is True
        assert data["availability"]["available"] == 1

    def test_unknown_timezone(self, client):
        owner, _, _, event = _setup(client)
        url = _url(f"/{event['event_id']}/advisories", owner["user_id"])
        assert client.get(url, params={"timezone": "Mars/Olympus"}).status_code == 400

    def test_non_member_forbidden(self, client):
        _, _, _, event = _setup(client)
        stranger = create_test_user(client, name="Stranger")
        assert client.get(_url(f"/{event['event_id']}/advisories", stranger["user_id"])).status_code == 403
