from edudesk.models import AgentUniversityAssignment, Brochure, UniversityProgram
from edudesk.services import brochure_storage


def _upload(client, headers, program_id, title="MBA Guide", filename="guide.pdf", content=b"%PDF-1.4"):
    return client.post(
        f"/brochures/ups/{program_id}/brochures",
        headers=headers,
        data={"title": title},
        files={"file": (filename, content, "application/pdf")},
    )


# Authentication

def test_login_returns_token(client, admin_user):
    response = client.post("/login", json={"email": "admin@example.com", "password": "password123"})
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["roles"] == ["admin"]

    response = client.post("/login", json={"email": "admin@example.com", "password": "WrongPassword"})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_protected_endpoint_requires_token(client):
    response = client.get("/agent-university/stats/assignment-counts")
    assert response.status_code == 401


def test_agent_cannot_use_admin_endpoints(client, make_agent, make_program, agent_headers_for):
    agent = make_agent()
    program = make_program()
    response = client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=agent_headers_for(agent),
        json={"agentIds": [agent.id]},
    )
    assert response.status_code == 403


# Agent-university assignments

def test_sync_agents_endpoint(client, admin_headers, make_agent, make_program):
    program = make_program()
    first, second, third = make_agent(), make_agent(), make_agent()

    response = client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": [first.id, second.id]},
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"added": 2, "removed": 0}

    response = client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": [second.id, third.id, third.id]},
    )
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"added": 1, "removed": 1}

    response = client.get(f"/agent-university/university/{program.id}/agents", headers=admin_headers)
    assert response.status_code == 200
    agents = response.json()["data"]
    assert sorted(a["agent_id"] for a in agents) == sorted([second.id, third.id])
    assert agents[0]["agent"]["company_name"] == "Study Abroad Co"


def test_sync_agents_rejects_non_array(client, admin_headers, make_program):
    program = make_program()

    response = client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": "not-a-list"},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=admin_headers,
        json={},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Agent IDs must be an array"


def test_sync_agents_unknown_program(client, admin_headers):
    response = client.post(
        "/agent-university/university/4242/sync-agents",
        headers=admin_headers,
        json={"agentIds": []},
    )
    assert response.status_code == 404


def test_bulk_assign_and_counts(client, admin_headers, test_db, make_agent, make_program):
    programs = [make_program("Oxford"), make_program("Cambridge")]
    agents = [make_agent(), make_agent()]
    payload = {"universityIds": [p.id for p in programs], "agentIds": [a.id for a in agents]}

    response = client.post("/agent-university/univerity-broucher-bulk-assign", headers=admin_headers, json=payload)
    assert response.status_code == 200
    assert response.json()["data"] == {"created": 4, "skipped": 0}

    response = client.post("/agent-university/univerity-broucher-bulk-assign", headers=admin_headers, json=payload)
    assert response.json()["data"] == {"created": 0, "skipped": 4}
    assert test_db.query(AgentUniversityAssignment).count() == 4

    response = client.get("/agent-university/stats/assignment-counts", headers=admin_headers)
    stats = response.json()["data"]
    assert {row["university_id"]: row["count"] for row in stats} == {programs[0].id: 2, programs[1].id: 2}


def test_bulk_assign_requires_ids(client, admin_headers):
    response = client.post(
        "/agent-university/univerity-broucher-bulk-assign",
        headers=admin_headers,
        json={"universityIds": [], "agentIds": [1]},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "University IDs are required"


# Brochure files

def test_upload_brochure_stores_file_under_derived_path(client, admin_headers, make_program, upload_root):
    program = make_program("Oxford")

    response = _upload(client, admin_headers, program.id)

    assert response.status_code == 201
    brochure = response.json()["data"]
    assert brochure["file_url"] == "/documents/brochure/oxford_mba-guide/mba-guide.pdf"
    assert brochure["name"] == "mba-guide.pdf"
    assert brochure["url"] == brochure["file_url"]
    stored = upload_root / "documents" / "brochure" / "oxford_mba-guide" / "mba-guide.pdf"
    assert stored.read_bytes() == b"%PDF-1.4"
    assert list((upload_root / "temp").iterdir()) == []


def test_second_upload_does_not_overwrite(client, admin_headers, make_program, monkeypatch):
    monkeypatch.setattr(brochure_storage.time, "time", lambda: 1712345678)
    program = make_program("Oxford")

    first = _upload(client, admin_headers, program.id, content=b"first").json()["data"]
    second = _upload(client, admin_headers, program.id, content=b"second").json()["data"]

    assert first["name"] == "mba-guide.pdf"
    assert second["name"] == "mba-guide_1712345678.pdf"


def test_brochure_without_file(client, admin_headers, make_program):
    program = make_program()

    response = client.post(
        f"/brochures/ups/{program.id}/brochures",
        headers=admin_headers,
        data={"title": "Links only", "url": "https://example.com/guide", "date": "2025-09-01"},
    )

    assert response.status_code == 201
    brochure = response.json()["data"]
    assert brochure["file_url"] is None
    assert brochure["url"] == "https://example.com/guide"
    assert brochure["date"] == "2025-09-01"


def test_upload_to_unknown_program(client, admin_headers):
    response = _upload(client, admin_headers, 999)
    assert response.status_code == 404


def test_update_brochure_replaces_old_file(client, admin_headers, make_program, upload_root):
    program = make_program("Oxford")
    created = _upload(client, admin_headers, program.id).json()["data"]
    old_path = upload_root / created["file_url"].lstrip("/")
    assert old_path.exists()

    response = client.put(
        f"/brochures/{created['id']}",
        headers=admin_headers,
        data={"title": "MBA Handbook"},
        files={"file": ("handbook.pdf", b"new", "application/pdf")},
    )

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["file_url"] == "/documents/brochure/oxford_mba-handbook/mba-handbook.pdf"
    assert (upload_root / updated["file_url"].lstrip("/")).read_bytes() == b"new"
    assert not old_path.exists()
    assert not old_path.parent.exists()


def test_update_brochure_rejects_blank_title(client, admin_headers, make_program):
    program = make_program("Oxford")
    created = _upload(client, admin_headers, program.id).json()["data"]

    response = client.put(f"/brochures/{created['id']}", headers=admin_headers, data={"title": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "Brochure title is required"
    response = client.get(f"/brochures/ups/{program.id}/brochures", headers=admin_headers)
    assert [b["title"] for b in response.json()["data"]] == ["MBA Guide"]


def test_delete_brochure_removes_file(client, admin_headers, test_db, make_program, upload_root):
    program = make_program("Oxford")
    created = _upload(client, admin_headers, program.id).json()["data"]
    stored = upload_root / created["file_url"].lstrip("/")

    response = client.delete(f"/brochures/{created['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert not stored.exists()
    assert not stored.parent.exists()
    assert test_db.query(Brochure).count() == 0

    response = client.delete(f"/brochures/{created['id']}", headers=admin_headers)
    assert response.status_code == 404


def test_delete_program_cascades(client, admin_headers, test_db, make_agent, make_program, upload_root):
    program = make_program("Oxford")
    other = make_program("Cambridge")
    agent = make_agent()
    first = _upload(client, admin_headers, program.id, title="MBA Guide").json()["data"]
    second = _upload(client, admin_headers, program.id, title="Fees").json()["data"]
    kept = _upload(client, admin_headers, other.id, title="Fees").json()["data"]
    client.post(
        f"/agent-university/university/{program.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": [agent.id]},
    )

    response = client.delete(f"/brochures/ups/{program.id}", headers=admin_headers)

    assert response.status_code == 200
    for brochure in (first, second):
        assert not (upload_root / brochure["file_url"].lstrip("/")).exists()
    assert (upload_root / kept["file_url"].lstrip("/")).exists()
    test_db.expire_all()
    assert test_db.query(UniversityProgram).filter(UniversityProgram.id == program.id).first() is None
    assert [b.id for b in test_db.query(Brochure).all()] == [kept["id"]]
    assert test_db.query(AgentUniversityAssignment).count() == 0


def test_delete_type_cascades(client, admin_headers, test_db, brochure_type, make_program, upload_root):
    program = make_program("Oxford")
    created = _upload(client, admin_headers, program.id).json()["data"]

    response = client.delete(f"/brochures/types/{brochure_type.id}", headers=admin_headers)

    assert response.status_code == 200
    assert not (upload_root / created["file_url"].lstrip("/")).exists()
    test_db.expire_all()
    assert test_db.query(UniversityProgram).count() == 0
    assert test_db.query(Brochure).count() == 0


# Types, categories, programs

def test_type_category_program_crud(client, admin_headers):
    response = client.post("/brochures/types", headers=admin_headers, json={"name": "Undergraduate"})
    assert response.status_code == 201
    type_id = response.json()["data"]["id"]

    response = client.post("/brochures/types", headers=admin_headers, json={"name": "undergraduate"})
    assert response.status_code == 400

    response = client.post(
        "/brochures/categories", headers=admin_headers, json={"name": "Fees", "brochure_type_id": type_id}
    )
    assert response.status_code == 201
    assert response.json()["data"]["brochure_type"]["name"] == "Undergraduate"

    response = client.post("/brochures/ups", headers=admin_headers, json={"name": "Oxford", "brochure_type_id": type_id})
    assert response.status_code == 201
    program_id = response.json()["data"]["id"]

    response = client.put(f"/brochures/ups/{program_id}", headers=admin_headers, json={"name": "Oxford University"})
    assert response.json()["data"]["name"] == "Oxford University"

    response = client.get("/brochures/types", headers=admin_headers)
    assert response.json()["data"] == [{"id": type_id, "name": "Undergraduate", "up_count": 1}]

    response = client.get(f"/brochures/ups/type/{type_id}", headers=admin_headers)
    assert [p["brochure_count"] for p in response.json()["data"]] == [0]


def test_agent_sees_only_assigned_programs(client, admin_headers, make_agent, make_program, agent_headers_for):
    assigned = make_program("Oxford")
    hidden = make_program("Cambridge")
    agent = make_agent()
    client.post(
        f"/agent-university/university/{assigned.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": [agent.id]},
    )
    headers = agent_headers_for(agent)

    response = client.get("/brochures/ups", headers=headers)
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["data"]] == [assigned.id]

    response = client.get(f"/brochures/ups/{assigned.id}/brochures", headers=headers)
    assert response.status_code == 200

    response = client.get(f"/brochures/ups/{hidden.id}/brochures", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "You are not assigned to this university program"


# Users and agents

def test_create_user_and_agent_profile(client, admin_headers):
    response = client.post(
        "/users/",
        headers=admin_headers,
        json={
            "email": "partner@example.com",
            "password": "StrongPassword123!",
            "first_name": "Partner",
            "last_name": "Agent",
            "roles": ["agent"],
        },
    )
    assert response.status_code == 201
    user_id = response.json()["data"]["id"]

    response = client.post(
        "/users/agents",
        headers=admin_headers,
        json={"user_id": user_id, "company_name": "Global Study Partners"},
    )
    assert response.status_code == 201
    agent = response.json()["data"]
    assert agent["status"] == "pending"
    assert agent["email"] == "partner@example.com"

    response = client.patch(f"/users/agents/{agent['id']}/status", headers=admin_headers, json={"status": "approved"})
    assert response.json()["data"]["status"] == "approved"

    response = client.get("/users/agents?status=approved", headers=admin_headers)
    assert [a["id"] for a in response.json()["data"]] == [agent["id"]]


def test_agent_program_detail_and_type_filter(client, admin_headers, brochure_type, make_agent, make_program,
                                              agent_headers_for):
    assigned = make_program("Oxford")
    hidden = make_program("Cambridge")
    agent = make_agent()
    client.post(
        f"/agent-university/university/{assigned.id}/sync-agents",
        headers=admin_headers,
        json={"agentIds": [agent.id]},
    )
    headers = agent_headers_for(agent)

    response = client.get(f"/brochures/ups/{assigned.id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Oxford"

    # unassigned and missing programs look the same to an agent
    response = client.get(f"/brochures/ups/{hidden.id}", headers=headers)
    assert response.status_code == 403
    response = client.get("/brochures/ups/99999", headers=headers)
    assert response.status_code == 403

    response = client.get("/brochures/ups/99999", headers=admin_headers)
    assert response.status_code == 404

    response = client.get(f"/brochures/ups/type/{brochure_type.id}", headers=headers)
    assert [p["id"] for p in response.json()["data"]] == [assigned.id]

    response = client.get(f"/brochures/ups/type/{brochure_type.id}", headers=admin_headers)
    assert sorted(p["id"] for p in response.json()["data"]) == sorted([assigned.id, hidden.id])
