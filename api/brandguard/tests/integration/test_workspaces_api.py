"""Integration tests for workspaces, custom rules and feedback."""


class TestWorkspacesAPI:
    """Test cases for workspace endpoints."""

    def test_first_list_creates_default(self, client):
        response = client.get("/workspaces")

        assert response.status_code == 200
        workspaces = response.json()
        assert len(workspaces) == 1
        assert workspaces[0]["name"] == "Personal Workspace"
        assert client.get("/workspaces").json() == workspaces

    def test_create_and_rename(self, client, workspace):
        response = client.patch(f"/workspaces/{workspace['id']}", json={"name": "Fall Campaign"})

        assert response.status_code == 200
        assert response.json()["name"] == "Fall Campaign"
        assert [w["name"] for w in client.get("/workspaces").json()] == ["Fall Campaign"]

    def test_blank_name_rejected(self, client):
        assert client.post("/workspaces", json={"name": "   "}).status_code == 422

    def test_rename_missing_workspace(self, client):
        response = client.patch("/workspaces/missing", json={"name": "X"})

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundException"

    def test_delete_returns_remaining(self, client, workspace):
        other = client.post("/workspaces", json={"name": "Other"}).json()

        response = client.delete(f"/workspaces/{workspace['id']}")

        assert response.status_code == 200
        assert [w["id"] for w in response.json()] == [other["id"]]

    def test_delete_last_workspace_leaves_default(self, client, workspace):
        response = client.delete(f"/workspaces/{workspace['id']}")

        assert [w["name"] for w in response.json()] == ["Personal Workspace"]


class TestRulesAPI:
    """Test cases for custom rule endpoints."""

    def test_add_and_list(self, client, workspace):
        url = f"/workspaces/{workspace['id']}/rules"

        created = client.post(url, json={"text": "Must mention #BrandPartner"})

        assert created.status_code == 201
        assert client.get(url).json() == [created.json()]

    def test_replace(self, client, workspace):
        url = f"/workspaces/{workspace['id']}/rules"
        client.post(url, json={"text": "Old rule"})

        response = client.put(url, json={"rules": [{"text": "No competitor names"}, {"id": "r2", "text": "Say 'organic'"}]})

        assert response.status_code == 200
        assert [r["text"] for r in response.json()] == ["No competitor names", "Say 'organic'"]
        assert response.json()[1]["id"] == "r2"

    def test_rules_for_missing_workspace(self, client):
        assert client.get("/workspaces/missing/rules").status_code == 404

    def test_rule_text_too_long(self, client, workspace):
        response = client.post(f"/workspaces/{workspace['id']}/rules", json={"text": "x" * 501})

        assert response.status_code == 422


class TestFeedbackAPI:

    def test_submit(self, client, workspace):
        response = client.post(
            f"/workspaces/{workspace['id']}/feedback", json={"type": "bug", "message": "Chart is empty"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "bug"
        assert body["workspace_id"] == workspace["id"]

    def test_default_type(self, client, workspace):
        response = client.post(f"/workspaces/{workspace['id']}/feedback", json={"message": "Love it"})

        assert response.json()["type"] == "suggestion"

    def test_unknown_type(self, client, workspace):
        response = client.post(f"/workspaces/{workspace['id']}/feedback", json={"type": "rant", "message": "x"})

        assert response.status_code == 422
