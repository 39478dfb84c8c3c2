from conftest import auth, signup

def test_profiles_are_readable_by_everyone(client):
    manager_id, _ = signup(client, "manager", role="manager", full_name="Mia")
    _, user_jwt = signup(client, "user", full_name="Uma")

    r = client.get("/profiles", headers=auth(user_jwt))
    assert r.status_code == 200
    assert {p["full_name"] for p in r.json()} == {"Mia", "Uma"}

    r = client.get(f"/profiles/{manager_id}", headers=auth(user_jwt))
    assert r.status_code == 200
    assert r.json()["full_name"] == "Mia"

def test_me_reports_own_role(client):
    _, user_jwt = signup(client, "user")
    r = client.get("/me", headers=auth(user_jwt))
    assert r.status_code == 200
    assert r.json()["role"] == "user"
    assert r.json()["profile"]["full_name"] == ""

def test_profile_updates_are_self_service(client):
    manager_id, manager_jwt = signup(client, "manager", role="manager")
    user_id, user_jwt = signup(client, "user")

    r = client.patch(
        f"/profiles/{user_id}",
        headers=auth(user_jwt),
        json={"full_name": "Uma Renamed", "avatar_url": "https://example.com/a.png"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["full_name"] == "Uma Renamed"
    assert r.json()["avatar_url"] == "https://example.com/a.png"

    r = client.patch(f"/profiles/{user_id}", headers=auth(manager_jwt), json={"full_name": "nope"})
    assert r.status_code == 403

    r = client.patch(f"/profiles/{manager_id}", headers=auth(manager_jwt), json={"full_name": "x" * 201})
    assert r.status_code == 422
    assert r.json()["field"] == "full_name"

def test_profile_policy_runs_before_field_checks(client):
    _, manager_jwt = signup(client, "manager", role="manager")
    user_id, user_jwt = signup(client, "user")

    r = client.patch(f"/profiles/{user_id}", headers=auth(manager_jwt), json={"full_name": 123})
    assert r.status_code == 403, r.text

    r = client.patch(f"/profiles/{user_id}", headers=auth(user_jwt), json={"full_name": 123})
    assert r.status_code == 422, r.text
    assert r.json()["field"] == "full_name"
