"""
API tests for renewal decisions and in-app notifications.
"""
from datetime import date
from cardledger.models import Notification, RenewalLog, UserRole, BusinessUnit, Recurring


def test_handler_records_one_decision_per_cycle(client, db, make_user, make_entry, headers_for):
    handler = make_user(name="Raghav", role=UserRole.SERVICE_HANDLER)
    entry = make_entry()

    response = client.post(f"/api/renewals/{entry.id}", json={"action": "Continue"}, headers=headers_for(handler))

    assert response.status_code == 201
    data = response.json()
    assert data["action"] == "Continue"
    assert data["renewal_date"] == "2026-01-05"
    assert data["expense_entry_id"] == entry.id

    again = client.post(f"/api/renewals/{entry.id}", json={"action": "Cancel"}, headers=headers_for(handler))
    assert again.status_code == 400
    assert again.json()["detail"] == "A renewal decision is already recorded for this cycle"

    history = client.get(f"/api/renewals/{entry.id}", headers=headers_for(handler))
    assert [log["action"] for log in history.json()] == ["Continue"]


def test_cancel_notifies_mis_managers(client, db, make_user, make_entry, headers_for):
    mis = make_user(name="Mira", role=UserRole.MIS_MANAGER, business_unit=None)
    handler = make_user(name="Raghav", role=UserRole.SERVICE_HANDLER)
    entry = make_entry()

    response = client.post(
        f"/api/renewals/{entry.id}",
        json={"action": "Cancel", "reason": "Switching tools"},
        headers=headers_for(handler)
    )

    assert response.status_code == 201
    notification = db.query(Notification).one()
    assert notification.user_id == mis.id
    assert notification.type == "service_cancellation"
    assert notification.data == {"reason": "Switching tools"}

    inbox = client.get("/api/notifications", headers=headers_for(mis))
    assert inbox.status_code == 200
    assert [item["id"] for item in inbox.json()] == [notification.id]

    read = client.patch(f"/api/notifications/{notification.id}/read", headers=headers_for(mis))
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    assert client.get("/api/notifications", params={"unread_only": True}, headers=headers_for(mis)).json() == []


def test_only_the_named_handler_may_decide(client, make_user, make_entry, headers_for):
    entry = make_entry(service_handler="Tarun Mehta")
    handler = make_user(name="Raghav", role=UserRole.SERVICE_HANDLER)
    spoc = make_user(name="Sara")

    assert client.post(f"/api/renewals/{entry.id}", json={"action": "Continue"}, headers=headers_for(handler)).status_code == 403
    assert client.post(f"/api/renewals/{entry.id}", json={"action": "Continue"}, headers=headers_for(spoc)).status_code == 403

    other_unit = make_entry(business_unit=BusinessUnit.COLLABX)
    assert client.post(f"/api/renewals/{other_unit.id}", json={"action": "Continue"}, headers=headers_for(handler)).status_code == 404


def test_decision_needs_an_upcoming_renewal(client, make_user, make_entry, headers_for):
    admin = make_user(name="Sam", role=UserRole.SUPER_ADMIN, business_unit=None)
    one_time = make_entry(recurring=Recurring.ONE_TIME)

    response = client.post(f"/api/renewals/{one_time.id}", json={"action": "Continue"}, headers=headers_for(admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "Entry has no upcoming renewal"


def test_disable_action_is_not_accepted_from_clients(client, db, make_user, make_entry, headers_for):
    admin = make_user(name="Sam", role=UserRole.SUPER_ADMIN, business_unit=None)
    entry = make_entry(next_renewal_date=date(2026, 1, 5))

    response = client.post(f"/api/renewals/{entry.id}", json={"action": "DisableByMIS"}, headers=headers_for(admin))

    assert response.status_code == 422
    assert db.query(RenewalLog).count() == 0


def test_reading_someone_elses_notification(client, db, make_user, headers_for):
    owner = make_user(name="Mira", role=UserRole.MIS_MANAGER, business_unit=None)
    other = make_user(name="Sam", role=UserRole.SUPER_ADMIN, business_unit=None)
    notification = Notification(user_id=owner.id, type="renewal_reminder", title="t", message="m")
    db.add(notification)
    db.commit()

    response = client.patch(f"/api/notifications/{notification.id}/read", headers=headers_for(other))

    assert response.status_code == 404
