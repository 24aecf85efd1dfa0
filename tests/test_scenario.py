from fastapi import status


def test_ticket_lifecycle_end_to_end(client, admin_user, auth_headers, mailer):
    """Signup, submit, claim, resolve and read back, the way the frontend drives it."""
    customer = client.post("/api/auth/register", json={
        "name": "Grace Customer",
        "email": "grace@example.com",
        "password": "hopper1",
    }).json()
    helper = client.post("/api/auth/register", json={
        "name": "Henry Helper",
        "email": "henry@example.com",
        "password": "helper1",
        "role": "agent",
    }).json()
    customer_headers = {"Authorization": f"Bearer {customer['token']}"}
    helper_headers = {"Authorization": f"Bearer {helper['token']}"}

    ticket = client.post(
        "/api/tickets",
        json={"title": "Cannot send email", "description": "Outlook shows a sync error.", "priority": "high"},
        headers=customer_headers,
    ).json()
    assert ticket["status"] == "open"

    queue = client.get("/api/tickets", params={"assigned": "false"}, headers=helper_headers).json()
    assert [t["id"] for t in queue["tickets"]] == [ticket["id"]]

    taken = client.put(f"/api/tickets/{ticket['id']}/take", headers=helper_headers)
    assert taken.status_code == status.HTTP_200_OK

    working = client.put(
        f"/api/tickets/{ticket['id']}", json={"status": "in_progress"}, headers=helper_headers
    ).json()
    assert working["status"] == "in_progress"

    resolved = client.put(
        f"/api/tickets/{ticket['id']}",
        json={"status": "resolved", "resolution_notes": "Rebuilt the local profile."},
        headers=helper_headers,
    ).json()
    assert resolved["status"] == "resolved"
    assert resolved["assigned_agent"]["name"] == "Henry Helper"

    seen_by_customer = client.get(f"/api/tickets/{ticket['id']}", headers=customer_headers).json()
    assert seen_by_customer["resolution_notes"] == "Rebuilt the local profile."

    outsider = client.post("/api/auth/register", json={
        "name": "Ivy Outsider",
        "email": "ivy@example.com",
        "password": "outsider1",
    }).json()
    hidden = client.get(f"/api/tickets/{ticket['id']}", headers={"Authorization": f"Bearer {outsider['token']}"})
    assert hidden.status_code == status.HTTP_404_NOT_FOUND

    notifications = [(m["To"], m["X-Notification-Type"]) for m in mailer.sent]
    assert notifications == [
        ("grace@example.com", "ticket-created"),
        ("grace@example.com", "ticket-resolved"),
    ]

    customer_stats = client.get("/api/tickets/stats", headers=customer_headers).json()["stats"]
    assert customer_stats["my_resolved_tickets"] == 1

    overview = client.get(f"/api/users/{customer['user']['id']}", headers=auth_headers(admin_user)).json()
    assert overview["ticket_stats"]["resolved_tickets"] == 1


def test_knowledge_base_flow(client, agent, auth_headers):
    created = client.post(
        "/api/knowledge-base",
        json={
            "title": "Fixing Outlook sync errors",
            "content": "Close Outlook, rebuild the profile, reopen.",
            "keywords": "outlook, email, sync",
            "category": "technical",
        },
        headers=auth_headers(agent),
    ).json()

    results = client.get("/api/knowledge-base", params={"search": "sync"}).json()
    assert [a["id"] for a in results["data"]] == [created["id"]]

    vote = client.post(f"/api/knowledge-base/{created['id']}/helpful").json()
    assert vote["message"] == "Thank you for your feedback!"
    assert vote["helpful_count"] == 1
