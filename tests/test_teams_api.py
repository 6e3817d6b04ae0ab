API = "/api/v1/teams"


def test_my_teams_lists_led_and_member_teams(client, org, headers_for):
    led = client.get(f"{API}/mine", headers=headers_for(org.m)).json()
    joined = client.get(f"{API}/mine", headers=headers_for(org.e)).json()

    assert {t["id"] for t in led} == {org.team_x.id, org.team_y.id}
    assert [t["id"] for t in joined] == [org.team_x.id]
    assert client.get(f"{API}/mine", headers=headers_for(org.n)).json() == []


def test_team_detail_is_limited_to_its_leader(client, org, headers_for):
    response = client.get(f"{API}/{org.team_x.id}", headers=headers_for(org.m))
    assert response.status_code == 200
    assert response.json()["leader"]["id"] == org.m.id
    assert {m["user_id"] for m in response.json()["members"]} == {org.e.id, org.e2.id}

    assert client.get(f"{API}/{org.team_z.id}", headers=headers_for(org.m)).status_code == 403
    assert client.get(f"{API}/{org.team_x.id}", headers=headers_for(org.e)).status_code == 403
    assert client.get(f"{API}/{org.team_z.id}", headers=headers_for(org.hr)).status_code == 200
    assert client.get(f"{API}/4242", headers=headers_for(org.admin)).status_code == 404


def test_hr_creates_team(client, org, headers_for):
    body = {"name": "Payroll", "leader_id": org.m2.id, "member_ids": [org.n.id]}

    response = client.post(f"{API}/", json=body, headers=headers_for(org.hr))

    assert response.status_code == 201
    assert response.json()["name"] == "Payroll"
    assert client.post(f"{API}/", json=body, headers=headers_for(org.hr)).status_code == 400

    # The new roster immediately widens who may chat
    allowed = client.get("/api/v1/chat/allowed-users", headers=headers_for(org.n)).json()
    assert {u["id"] for u in allowed["allowed_users"]} == {org.m2.id, org.hr.id}


def test_team_creation_requires_known_users_and_role(client, org, headers_for):
    unknown = {"name": "Ghosts", "leader_id": 4242, "member_ids": []}
    assert client.post(f"{API}/", json=unknown, headers=headers_for(org.admin)).status_code == 400

    body = {"name": "Rogue", "leader_id": org.m.id, "member_ids": []}
    assert client.post(f"{API}/", json=body, headers=headers_for(org.m)).status_code == 403
