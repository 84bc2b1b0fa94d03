from datetime import datetime, timedelta

import pytest

from octagram.models import Collection, CollectionItem, Run


def _add_run(db, run_id, user_id="user-1", type="translate", input_text="hello", output_text="hola", age=timedelta(0)):
    db.add(
        Run(
            id=run_id,
            user_id=user_id,
            type=type,
            source="web",
            input_text=input_text,
            output_text=output_text,
            params={"formality": 4, "creativity": 2},
            model="gpt-4o-mini",
            token_total=20,
            created_at=datetime.utcnow() - age,
        )
    )


@pytest.fixture
def runs(session_factory):
    db = session_factory()
    _add_run(db, "run-old", input_text="first note", age=timedelta(hours=3))
    _add_run(db, "run-mid", input_text="50% discount", age=timedelta(hours=2))
    _add_run(db, "run-new", input_text="latest", output_text="dernier", age=timedelta(hours=1))
    _add_run(db, "run-rewrite", type="rewrite", input_text="rewrite me")
    _add_run(db, "run-expired", input_text="ancient", age=timedelta(days=45))
    _add_run(db, "run-other", user_id="user-2", input_text="someone else")
    db.commit()
    db.close()


def _ids(response):
    assert response.status_code == 200
    return [item["id"] for item in response.json()["items"]]


class TestHistory:
    def test_lists_newest_first_for_type(self, client, runs):
        assert _ids(client.get("/api/history", params={"type": "translate"})) == [
            "run-new",
            "run-mid",
            "run-old",
        ]

    def test_requires_valid_type(self, client, runs):
        response = client.get("/api/history", params={"type": "summarize"})
        assert response.status_code == 400
        assert response.json()["detail"] == "type must be one of: translate, rewrite, reply"
        assert client.get("/api/history").status_code == 400

    def test_search_matches_input_or_output(self, client, runs):
        assert _ids(client.get("/api/history", params={"type": "translate", "q": "DERNIER"})) == ["run-new"]
        assert _ids(client.get("/api/history", params={"type": "translate", "q": "note"})) == ["run-old"]

    def test_search_escapes_wildcards(self, client, runs):
        assert _ids(client.get("/api/history", params={"type": "translate", "q": "50%"})) == ["run-mid"]
        assert _ids(client.get("/api/history", params={"type": "translate", "q": "%"})) == ["run-mid"]

    def test_pagination_is_clamped(self, client, runs):
        assert _ids(client.get("/api/history", params={"type": "translate", "limit": 1, "offset": 1})) == ["run-mid"]
        assert len(_ids(client.get("/api/history", params={"type": "translate", "limit": 0}))) == 1
        assert len(_ids(client.get("/api/history", params={"type": "translate", "limit": 500}))) == 3

    def test_non_numeric_paging_falls_back_to_defaults(self, client, runs):
        response = client.get("/api/history", params={"type": "translate", "limit": "abc", "offset": "xyz"})
        assert _ids(response) == ["run-new", "run-mid", "run-old"]
        response = client.get("/api/history", params={"type": "translate", "limit": "1.9", "offset": "-3"})
        assert _ids(response) == ["run-new"]

    def test_collection_filters(self, client, runs):
        created = client.post("/api/collections", json={"name": "Keepers"}).json()["item"]
        client.post(f"/api/collections/{created['id']}/items", json={"runId": "run-mid"})

        in_collection = client.get(
            "/api/history", params={"type": "translate", "collectionId": created["id"]}
        )
        assert _ids(in_collection) == ["run-mid"]

        unsaved = client.get("/api/history", params={"type": "translate", "notInCollection": "1"})
        assert _ids(unsaved) == ["run-new", "run-old"]

    def test_empty_collection_returns_nothing(self, client, runs):
        created = client.post("/api/collections", json={"name": "Empty"}).json()["item"]
        response = client.get("/api/history", params={"type": "translate", "collectionId": created["id"]})
        assert _ids(response) == []


class TestCollections:
    def test_create_and_list_with_counts(self, client, runs):
        response = client.post("/api/collections", json={"name": "  Work  "})
        assert response.status_code == 200
        created = response.json()["item"]
        assert created["name"] == "Work"
        client.post(f"/api/collections/{created['id']}/items", json={"runId": "run-new"})
        client.post(f"/api/collections/{created['id']}/items", json={"runId": "run-old"})

        items = client.get("/api/collections").json()["items"]
        assert [(item["name"], item["itemCount"]) for item in items] == [("Work", 2)]

    @pytest.mark.parametrize(
        "body, message",
        [
            ({}, "name is required"),
            ({"name": "   "}, "name is required"),
            ({"name": "x" * 61}, "name must be 60 characters or less"),
        ],
    )
    def test_create_rejects_bad_names(self, client, body, message):
        response = client.post("/api/collections", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == message

    def test_detail_snapshots_run(self, client, runs):
        collection_id = client.post("/api/collections", json={"name": "Snap"}).json()["item"]["id"]
        item_id = client.post(
            f"/api/collections/{collection_id}/items", json={"runId": "run-new"}
        ).json()["id"]

        detail = client.get(f"/api/collections/{collection_id}").json()
        assert detail["collection"]["name"] == "Snap"
        [item] = detail["items"]
        assert item["id"] == item_id
        assert item["run_id"] == "run-new"
        assert item["output_text"] == "dernier"
        assert item["params"] == {"formality": 4, "creativity": 2}

    def test_add_item_from_payload(self, client, session_factory):
        collection_id = client.post("/api/collections", json={"name": "Manual"}).json()["item"]["id"]
        response = client.post(
            f"/api/collections/{collection_id}/items",
            json={
                "type": "reply",
                "inputText": " ctx ",
                "outputJson": {"replies": ["a", "b", "c"]},
                "params": {"intent": "Confirm"},
            },
        )
        assert response.status_code == 200
        db = session_factory()
        item = db.get(CollectionItem, response.json()["id"])
        assert item.run_id is None
        assert item.input_text == "ctx"
        assert item.source == "web"
        assert item.output_json == {"replies": ["a", "b", "c"]}
        db.close()

    def test_add_item_validation(self, client):
        collection_id = client.post("/api/collections", json={"name": "Manual"}).json()["item"]["id"]
        url = f"/api/collections/{collection_id}/items"
        assert client.post(url, json={"type": "poem", "inputText": "x"}).json()["detail"] == (
            "type is required (translate|rewrite|reply)"
        )
        response = client.post(url, json={"type": "rewrite", "inputText": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "inputText is required"

    def test_cannot_save_someone_elses_run(self, client, runs):
        collection_id = client.post("/api/collections", json={"name": "Mine"}).json()["item"]["id"]
        response = client.post(f"/api/collections/{collection_id}/items", json={"runId": "run-other"})
        assert response.status_code == 404

    def test_foreign_collection_is_not_found(self, client, session_factory):
        db = session_factory()
        db.add(Collection(id="col-2", user_id="user-2", name="Theirs", created_at=datetime.utcnow()))
        db.commit()
        db.close()

        assert client.get("/api/collections/col-2").status_code == 404
        assert client.post("/api/collections/col-2/items", json={"type": "translate", "inputText": "x"}).status_code == 404
        assert client.get("/api/collections").json()["items"] == []

    def test_remove_item(self, client, runs):
        collection_id = client.post("/api/collections", json={"name": "Trim"}).json()["item"]["id"]
        url = f"/api/collections/{collection_id}/items"
        item_id = client.post(url, json={"runId": "run-old"}).json()["id"]

        missing = client.request("DELETE", url, json={})
        assert missing.status_code == 400
        assert missing.json()["detail"] == "itemId is required"

        response = client.request("DELETE", url, json={"itemId": item_id})
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert client.get(f"/api/collections/{collection_id}").json()["items"] == []
