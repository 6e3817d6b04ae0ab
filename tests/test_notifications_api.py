API = "/api/v1"


def _send_dm(client, sender_headers, target_id, text):
    conversation = client.post(
        f"{API}/chat/conversations/direct", json={"target_user_id": target_id}, headers=sender_headers
    ).json()
    return client.post(
        f"{API}/chat/conversations/{conversation['id']}/messages", json={"text": text}, headers=sender_headers
    ).json()


def test_direct_message_creates_notification_for_receiver(client, org, headers_for):
    message = _send_dm(client, headers_for(org.e), org.m.id, "Quick question about the rota")

    notifications = client.get(f"{API}/notifications/", headers=headers_for(org.m)).json()

    assert len(notifications) == 1
    notification = notifications[0]
    assert notification["title"] == "New message from Eli Employee"
    assert notification["message"] == "Quick question about the rota"
    assert notification["related_message_id"] == message["id"]
    assert notification["actor_id"] == org.e.id
    assert notification["is_read"] is False
    assert client.get(f"{API}/notifications/", headers=headers_for(org.e)).json() == []


def test_long_messages_are_previewed(client, org, headers_for):
    _send_dm(client, headers_for(org.hr), org.e.id, "a" * 300)

    notification = client.get(f"{API}/notifications/", headers=headers_for(org.e)).json()[0]

    assert len(notification["message"]) <= 103
    assert notification["message"].endswith("...")


def test_unread_count_and_mark_read(client, org, headers_for):
    _send_dm(client, headers_for(org.e), org.m.id, "one")
    _send_dm(client, headers_for(org.e), org.m.id, "two")
    headers = headers_for(org.m)

    assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 2}

    first = client.get(f"{API}/notifications/", headers=headers).json()[0]
    assert client.patch(f"{API}/notifications/{first['id']}/read", headers=headers).status_code == 200
    assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 1}

    assert client.patch(f"{API}/notifications/mark-all-read", headers=headers).json() == {"updated_count": 1}
    assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 0}
    assert client.get(f"{API}/notifications/?unread_only=true", headers=headers).json() == []


def test_deleted_notifications_are_hidden(client, org, headers_for):
    _send_dm(client, headers_for(org.e), org.m.id, "hello")
    headers = headers_for(org.m)
    notification = client.get(f"{API}/notifications/", headers=headers).json()[0]

    assert client.delete(f"{API}/notifications/{notification['id']}", headers=headers).status_code == 200

    assert client.get(f"{API}/notifications/", headers=headers).json() == []
    assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 0}
    assert client.delete(f"{API}/notifications/{notification['id']}", headers=headers).status_code == 404


def test_cannot_touch_someone_elses_notification(client, org, headers_for):
    _send_dm(client, headers_for(org.e), org.m.id, "hello")
    notification = client.get(f"{API}/notifications/", headers=headers_for(org.m)).json()[0]

    assert client.patch(f"{API}/notifications/{notification['id']}/read", headers=headers_for(org.e)).status_code == 404
    assert client.delete(f"{API}/notifications/{notification['id']}", headers=headers_for(org.e)).status_code == 404


def test_team_messages_do_not_notify(client, org, headers_for):
    conversation = client.post(
        f"{API}/chat/conversations/team", json={"team_id": org.team_x.id}, headers=headers_for(org.m)
    ).json()
    client.post(f"{API}/chat/conversations/{conversation['id']}/messages", json={"text": "all hands"}, headers=headers_for(org.m))

    assert client.get(f"{API}/notifications/unread-count", headers=headers_for(org.e)).json() == {"unread_count": 0}


def test_hr_sends_notification_to_one_user(client, org, headers_for, token_for):
    body = {"user_id": org.e.id, "title": "Payslips", "message": "March payslips are out"}

    with client.websocket_connect(f"/ws/chat?token={token_for(org.e)}") as websocket:
        websocket.receive_json()
        websocket.receive_json()

        response = client.post(f"{API}/notifications/", json=body, headers=headers_for(org.hr))

        assert response.status_code == 201
        assert websocket.receive_json() == {
            "type": "unread_count_update",
            "payload": {"user_id": org.e.id, "unread_count": 1},
        }

    created = response.json()
    assert created["user_id"] == org.e.id
    assert created["actor_id"] == org.hr.id
    assert created["notification_type"] == "announcement"

    notifications = client.get(f"{API}/notifications/", headers=headers_for(org.e)).json()
    assert [n["title"] for n in notifications] == ["Payslips"]
    assert client.get(f"{API}/notifications/unread-count", headers=headers_for(org.e)).json() == {"unread_count": 1}


def test_notification_to_unknown_or_inactive_user_is_404(client, db, org, headers_for):
    org.n.is_active = False
    db.commit()
    headers = headers_for(org.admin)

    for user_id in (4242, org.n.id):
        response = client.post(
            f"{API}/notifications/", json={"user_id": user_id, "title": "Hi", "message": "there"}, headers=headers
        )
        assert response.status_code == 404


def test_broadcast_reaches_every_active_user_but_the_sender(client, db, org, headers_for):
    org.n.is_active = False
    db.commit()

    response = client.post(
        f"{API}/notifications/broadcast", json={"title": "Office closed", "message": "Friday is a holiday"},
        headers=headers_for(org.admin),
    )

    assert response.status_code == 200
    assert response.json() == {"created_count": 7}
    for user in (org.hr, org.m, org.m2, org.e, org.e2, org.f, org.g):
        assert client.get(f"{API}/notifications/unread-count", headers=headers_for(user)).json() == {"unread_count": 1}
    assert client.get(f"{API}/notifications/", headers=headers_for(org.admin)).json() == []


def test_only_admin_and_hr_may_send_notifications(client, org, headers_for):
    single = {"user_id": org.e.id, "title": "Hi", "message": "there"}
    broadcast = {"title": "Hi", "message": "everyone"}

    for user in (org.m, org.e):
        assert client.post(f"{API}/notifications/", json=single, headers=headers_for(user)).status_code == 403
        assert client.post(f"{API}/notifications/broadcast", json=broadcast, headers=headers_for(user)).status_code == 403
    assert client.get(f"{API}/notifications/unread-count", headers=headers_for(org.e)).json() == {"unread_count": 0}


def test_blank_notification_text_is_rejected(client, org, headers_for):
    response = client.post(
        f"{API}/notifications/", json={"user_id": org.e.id, "title": "", "message": "x"}, headers=headers_for(org.hr)
    )

    assert response.status_code == 422
