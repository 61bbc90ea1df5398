"""Dashboard seed and summary."""
import seed


class TestSeed:
    def test_seed_is_idempotent(self, client, auth, mongo, session):
        assert client.post("/admin/seed", params=auth).json() == {"kpis": 4, "status_cards": 5}
        client.post("/admin/seed", params=auth)
        company_id = session["user"]["company_id"]
        assert mongo["kpis"].count_documents({"company_id": company_id}) == 4
        assert mongo["status_overview"].find_one({"_id": f"{company_id}_sav"})["order"] == 5

    def test_seed_function(self, mongo):
        seed.seed_database(mongo, "acme")
        assert mongo["kpis"].find_one({"_id": "acme_ca"})["label"] == "CA Généré"


class TestSummary:
    def test_summary(self, client, auth, make_client):
        client.post("/admin/seed", params=auth)
        a = make_client()
        make_client(first_name="Paul")
        client.patch(f"/crm/clients/{a['_id']}", params=auth, json={"status": "Client"})
        tasks = [client.post("/tasks", params=auth, json={"title": f"Tâche {i}"}).json() for i in range(8)]
        client.patch(f"/tasks/{tasks[0]['_id']}/status", params=auth, json={"status": "completed"})

        data = client.get("/dashboard/summary", params=auth).json()
        assert [k["key"] for k in data["kpis"]] == ["ca", "marge", "taux_marge", "taux_transfo"]
        assert [c["order"] for c in data["status_cards"]] == [1, 2, 3, 4, 5]
        assert len(data["tasks"]) == 6
        assert all(t["status"] != "completed" for t in data["tasks"])
        assert data["counts"] == {"Tous": 2, "Leads": 1, "Prospects": 0, "Clients": 1}

    def test_other_company_sees_nothing(self, client, auth, register):
        client.post("/admin/seed", params=auth)
        other = register(email="other@example.com")
        data = client.get("/dashboard/summary", params={"token": other["token"]}).json()
        assert data["kpis"] == []
        assert data["status_cards"] == []
