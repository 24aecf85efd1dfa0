import pytest
from fastapi import status


@pytest.fixture
def create_article(client, auth_headers):
    def _create_article(author, title="How to reset your password", content="Open settings and pick reset.", **extra):
        payload = {"title": title, "content": content, **extra}
        response = client.post("/api/knowledge-base", json=payload, headers=auth_headers(author))
        assert response.status_code == 201, response.text
        return response.json()
    return _create_article


def test_list_is_public(client):
    response = client.get("/api/knowledge-base")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["data"] == []
    assert data["pagination"]["total"] == 0

def test_create_requires_auth(client):
    response = client.post("/api/knowledge-base", json={"title": "Anon", "content": "Not allowed"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_create_article(client, user, create_article):
    article = create_article(user, keywords="password, login , ,reset", category="account")
    assert article["keywords"] == ["password", "login", "reset"]
    assert article["category"] == "account"
    assert article["created_by"] == user.id
    assert article["creator"]["name"] == user.name
    assert article["helpful_count"] == 0

def test_create_article_validation(client, user, auth_headers):
    response = client.post(
        "/api/knowledge-base",
        json={"title": "", "content": "Some content"},
        headers=auth_headers(user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST

@pytest.mark.parametrize("payload", [
    {"title": "   ", "content": "Some content"},
    {"title": "Whitespace body", "content": " \n\t "},
])
def test_create_article_rejects_blank_text(client, user, auth_headers, payload):
    response = client.post("/api/knowledge-base", json=payload, headers=auth_headers(user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"

def test_create_article_strips_title_and_content(client, user, create_article):
    article = create_article(user, title="  Padded title  ", content="  Padded content ")
    assert article["title"] == "Padded title"
    assert article["content"] == "Padded content"

def test_get_article_is_public(client, user, create_article):
    article = create_article(user)
    response = client.get(f"/api/knowledge-base/{article['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["title"] == article["title"]

def test_get_missing_article(client):
    response = client.get("/api/knowledge-base/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Knowledge article not found"

def test_search_matches_title_content_and_keywords(client, user, create_article):
    create_article(user, title="VPN setup guide", content="Install the client.", keywords=["network"])
    create_article(user, title="Printer jams", content="Open tray two.", keywords=["hardware"])

    def titles(**params):
        data = client.get("/api/knowledge-base", params=params).json()
        return [a["title"] for a in data["data"]]

    assert titles(search="vpn") == ["VPN setup guide"]
    assert titles(search="tray") == ["Printer jams"]
    assert titles(search="hardware") == ["Printer jams"]

def test_filter_by_category(client, user, create_article):
    create_article(user, title="Invoice copies", category="billing")
    create_article(user, title="Reset password", category="account")

    data = client.get("/api/knowledge-base", params={"category": "billing"}).json()
    assert [a["title"] for a in data["data"]] == ["Invoice copies"]

def test_helpful_counts_every_vote(client, user, create_article):
    article = create_article(user)
    for expected in range(1, 4):
        response = client.post(f"/api/knowledge-base/{article['id']}/helpful")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["helpful_count"] == expected

    assert client.get(f"/api/knowledge-base/{article['id']}").json()["helpful_count"] == 3

def test_helpful_on_missing_article(client):
    response = client.post("/api/knowledge-base/9999/helpful")
    assert response.status_code == status.HTTP_404_NOT_FOUND

def test_list_orders_by_helpfulness(client, user, create_article):
    plain = create_article(user, title="Plain article")
    popular = create_article(user, title="Popular article")
    client.post(f"/api/knowledge-base/{popular['id']}/helpful")

    data = client.get("/api/knowledge-base").json()
    assert [a["id"] for a in data["data"]] == [popular["id"], plain["id"]]

def test_update_by_creator_and_staff(client, user, other_user, agent, auth_headers, create_article):
    article = create_article(user)

    denied = client.put(
        f"/api/knowledge-base/{article['id']}", json={"title": "Hijacked"}, headers=auth_headers(other_user)
    )
    assert denied.status_code == status.HTTP_403_FORBIDDEN
    assert denied.json()["message"] == "Not authorized to update this article"

    own = client.put(
        f"/api/knowledge-base/{article['id']}", json={"title": "Better title"}, headers=auth_headers(user)
    )
    assert own.status_code == status.HTTP_200_OK
    assert own.json()["title"] == "Better title"

    staff = client.put(
        f"/api/knowledge-base/{article['id']}", json={"keywords": "a,b"}, headers=auth_headers(agent)
    )
    assert staff.status_code == status.HTTP_200_OK
    assert staff.json()["keywords"] == ["a", "b"]

@pytest.mark.parametrize("payload", [{"title": "  "}, {"content": "   "}])
def test_update_rejects_blank_text(client, user, auth_headers, create_article, payload):
    article = create_article(user)
    response = client.put(f"/api/knowledge-base/{article['id']}", json=payload, headers=auth_headers(user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    unchanged = client.get(f"/api/knowledge-base/{article['id']}").json()
    assert unchanged["title"] == article["title"]
    assert unchanged["content"] == article["content"]

def test_delete_article(client, user, other_user, admin_user, auth_headers, create_article):
    article = create_article(user)

    denied = client.delete(f"/api/knowledge-base/{article['id']}", headers=auth_headers(other_user))
    assert denied.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete(f"/api/knowledge-base/{article['id']}", headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert client.get(f"/api/knowledge-base/{article['id']}").status_code == status.HTTP_404_NOT_FOUND
