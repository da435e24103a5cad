import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from blogapi.core.slug import generate_slug
from blogapi.models.blog import PostTag, Tag


class TestTags:
    def test_create_tag(self, client: TestClient, auth_headers):
        response = client.post("/tags", json={"name": "  Machine Learning "}, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Machine Learning"
        assert data["slug"] == "machine-learning"
        assert data["usage_count"] == 0

    def test_duplicate_tag(self, client: TestClient, auth_headers, tags):
        response = client.post("/tags", json={"name": "python"}, headers=auth_headers)

        assert response.status_code == 409

    def test_list_ordered_by_name(self, client: TestClient, tags):
        response = client.get("/tags")

        assert [t["name"] for t in response.json()] == ["fastapi", "python"]

    def test_search(self, client: TestClient, tags):
        response = client.get("/tags", params={"search": "PY"})

        assert [t["slug"] for t in response.json()] == ["python"]

    def test_by_slug(self, client: TestClient, tags):
        assert client.get("/tags/by-slug/fastapi").json()["id"] == tags[1].id
        assert client.get("/tags/by-slug/missing").status_code == 404

    def test_update_requires_a_field(self, client: TestClient, auth_headers, tags):
        response = client.patch(f"/tags/{tags[0].id}", json={}, headers=auth_headers)

        assert response.status_code == 422

    def test_rename(self, client: TestClient, auth_headers, tags):
        response = client.patch(f"/tags/{tags[0].id}", json={"name": "Python 3"}, headers=auth_headers)

        assert response.json()["slug"] == "python-3"

    def test_usage_count_and_popular(self, client: TestClient, auth_headers, tags):
        client.post(
            "/posts",
            json={"title": "First tagged post", "content": "Body", "tag_ids": [tags[1].id]},
            headers=auth_headers,
        )
        client.post(
            "/posts",
            json={"title": "Second tagged post", "content": "Body", "tag_ids": [tags[1].id, tags[0].id]},
            headers=auth_headers,
        )

        response = client.get("/tags/popular", params={"limit": 2})

        data = response.json()
        assert [t["slug"] for t in data] == ["fastapi", "python"]
        assert [t["usage_count"] for t in data] == [2, 1]

    def test_replacing_tags_updates_counts(self, client: TestClient, auth_headers, tags):
        post_id = client.post(
            "/posts",
            json={"title": "Tagged post", "content": "Body", "tag_ids": [tags[0].id]},
            headers=auth_headers,
        ).json()["id"]

        response = client.patch(f"/posts/{post_id}", json={"tag_ids": [tags[1].id]}, headers=auth_headers)

        assert [t["slug"] for t in response.json()["tags"]] == ["fastapi"]
        assert client.get("/tags/by-slug/python").json()["usage_count"] == 0
        assert client.get("/tags/by-slug/fastapi").json()["usage_count"] == 1

    def test_delete_tag_unlinks_posts(self, client: TestClient, auth_headers, session: Session, tags):
        client.post(
            "/posts",
            json={"title": "Tagged post", "content": "Body", "tag_ids": [tags[0].id]},
            headers=auth_headers,
        )

        response = client.delete(f"/tags/{tags[0].id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["slug"] == "python"
        assert session.exec(select(PostTag)).all() == []
        assert client.get("/posts/by-slug/tagged-post").json()["tags"] == []

    def test_unknown_tag_on_post(self, client: TestClient, auth_headers):
        response = client.post(
            "/posts", json={"title": "Tagged post", "content": "Body", "tag_ids": [42]}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"tag_ids": [42]}


def make_tags(session: Session, *specs):
    """Insert tags from (name, usage_count) pairs."""
    created = []
    for name, usage in specs:
        tag = Tag(name=name, slug=generate_slug(name), usage_count=usage)
        session.add(tag)
        created.append(tag)
    session.commit()
    for tag in created:
        session.refresh(tag)
    return created


class TestTagSorting:
    def test_sort_by_usage_desc(self, client: TestClient, session: Session):
        make_tags(session, ("alpha", 1), ("beta", 5), ("gamma", 3))

        response = client.get("/tags", params={"sort_by": "usage_count", "sort_order": "desc"})

        assert [t["name"] for t in response.json()] == ["beta", "gamma", "alpha"]

    def test_sort_by_name_desc(self, client: TestClient, tags):
        response = client.get("/tags", params={"sort_order": "desc"})

        assert [t["name"] for t in response.json()] == ["python", "fastapi"]

    def test_unknown_sort_column(self, client: TestClient):
        response = client.get("/tags", params={"sort_by": "slug"})

        assert response.status_code == 422


class TestTagSuggestions:
    def test_prefix_match_most_used_first(self, client: TestClient, session: Session):
        make_tags(session, ("Python", 1), ("pytest", 7), ("pydantic", 2), ("cpython", 9))

        response = client.get("/tags/suggestions", params={"q": "PY"})

        data = response.json()
        assert [t["name"] for t in data] == ["pytest", "pydantic", "Python"]
        assert set(data[0]) == {"id", "name", "slug", "color"}

    def test_limit(self, client: TestClient, session: Session):
        make_tags(session, ("data-one", 1), ("data-two", 2), ("data-three", 3))

        response = client.get("/tags/suggestions", params={"q": "data", "limit": 2})

        assert [t["name"] for t in response.json()] == ["data-three", "data-two"]

    def test_query_bounds(self, client: TestClient):
        assert client.get("/tags/suggestions", params={"q": ""}).status_code == 422
        assert client.get("/tags/suggestions", params={"q": "py", "limit": 21}).status_code == 422


class TestTagPostCount:
    def test_counts_published_posts_only(self, client: TestClient, auth_headers, tags):
        client.post(
            "/posts",
            json={"title": "Published tagged", "content": "Body", "published": True, "tag_ids": [tags[0].id]},
            headers=auth_headers,
        )
        client.post(
            "/posts",
            json={"title": "Draft tagged post", "content": "Body", "tag_ids": [tags[0].id]},
            headers=auth_headers,
        )

        with_count = client.get("/tags/by-slug/python", params={"include_post_count": True}).json()
        without_count = client.get("/tags/by-slug/python").json()

        assert with_count["post_count"] == 1
        assert with_count["usage_count"] == 2
        assert without_count["post_count"] is None


class TestBulkDeleteTags:
    def test_deletes_unused_tags(self, client: TestClient, auth_headers, tags):
        response = client.post(
            "/tags/bulk-delete", json={"ids": [tags[0].id, tags[1].id, 999]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["deleted_count"] == 2
        assert client.get("/tags").json() == []

    def test_refused_while_in_use(self, client: TestClient, auth_headers, tags):
        client.post(
            "/posts",
            json={"title": "Tagged post", "content": "Body", "tag_ids": [tags[1].id]},
            headers=auth_headers,
        )

        response = client.post(
            "/tags/bulk-delete", json={"ids": [tags[0].id, tags[1].id]}, headers=auth_headers
        )

        assert response.status_code == 412
        data = response.json()
        assert data["error"] == "PRECONDITION_FAILED"
        assert data["details"] == {"tag_ids": [tags[1].id]}
        assert len(client.get("/tags").json()) == 2

    def test_id_list_bounds(self, client: TestClient, auth_headers):
        empty = client.post("/tags/bulk-delete", json={"ids": []}, headers=auth_headers)
        too_many = client.post("/tags/bulk-delete", json={"ids": list(range(1, 52))}, headers=auth_headers)

        assert empty.status_code == 422
        assert too_many.status_code == 422

    def test_requires_authentication(self, client: TestClient, tags):
        response = client.post("/tags/bulk-delete", json={"ids": [tags[0].id]})

        assert response.status_code == 401


class TestTagStorageFailures:
    @pytest.mark.parametrize("path,action", [
        ("/tags/popular", "fetch popular tags"),
        ("/tags/suggestions?q=py", "fetch tag suggestions"),
        ("/tags/by-slug/python", "fetch tag"),
        ("/categories/by-slug/travel", "fetch category"),
    ])
    def test_query_failure_is_reported(self, client: TestClient, session: Session, monkeypatch, path, action):
        def broken_exec(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "exec", broken_exec)

        response = client.get(path)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "INTERNAL_ERROR"
        assert data["message"].startswith(f"Failed to {action}")

    @pytest.mark.parametrize("path,action", [
        ("/tags/1", "fetch tag"),
        ("/categories/1", "fetch category"),
    ])
    def test_lookup_failure_is_reported(self, client: TestClient, session: Session, monkeypatch, path, action):
        def broken_get(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "get", broken_get)

        response = client.get(path)

        assert response.status_code == 500
        assert response.json()["message"].startswith(f"Failed to {action}")
