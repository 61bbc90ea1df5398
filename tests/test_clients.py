"""Client directory: lead creation, tabs, search, sheet edits, properties, contacts."""


class TestCreateClient:
    def test_new_client_is_a_lead(self, make_client, session):
        data = make_client()
        assert data["name"] == "JEAN MARTIN"
        assert data["status"] == "Leads"
        assert data["origin"] == "Site web"
        assert data["location"] == "Amiens"
        assert data["project_count"] == 0
        assert data["company_id"] == session["user"]["company_id"]
        assert data["added_by"]["name"] == "Ana Durand"
        assert data["details"]["sub_origin"] == "Chatbot"
        assert data["details"]["referent"] == "Ana Durand"

    def test_missing_city_gives_placeholder_location(self, make_client):
        assert make_client(city=None)["location"] == "Non renseignée"

    def test_incoherent_origin_is_rejected(self, client, auth):
        response = client.post("/crm/clients", params=auth, json={
            "first_name": "Jean", "last_name": "Martin", "category": "Magasin", "origin": "Site web",
        })
        assert response.status_code == 400

    def test_names_are_required(self, client, auth):
        response = client.post("/crm/clients", params=auth, json={"first_name": "", "last_name": "Martin"})
        assert response.status_code == 422


class TestDirectory:
    def test_tabs_and_counts(self, client, auth, make_client):
        a = make_client(first_name="Anne", last_name="Dupont")
        make_client(first_name="Paul", last_name="Leroy")
        client.patch(f"/crm/clients/{a['_id']}", params=auth, json={"status": "Prospect"})

        data = client.get("/crm/clients", params=auth).json()
        assert data["tabs"] == {"Tous": 2, "Leads": 1, "Prospects": 1, "Clients": 0}
        assert len(data["items"]) == 2

        prospects = client.get("/crm/clients", params={**auth, "tab": "Prospects"}).json()["items"]
        assert [c["name"] for c in prospects] == ["ANNE DUPONT"]

    def test_unknown_tab_is_rejected(self, client, auth):
        assert client.get("/crm/clients", params={**auth, "tab": "Archives"}).status_code == 422

    def test_quick_search_is_capped_at_five(self, client, auth, make_client):
        for i in range(7):
            make_client(first_name=f"Jean{i}", last_name="Martin")
        make_client(first_name="Anne", last_name="Dupont")
        assert len(client.get("/crm/clients/search", params={**auth, "q": "martin"}).json()) == 5
        assert client.get("/crm/clients/search", params={**auth, "q": "  "}).json() == []

    def test_other_company_cannot_read_client(self, client, make_client, register):
        c = make_client()
        other = register(email="other@example.com")
        response = client.get(f"/crm/clients/{c['_id']}", params={"token": other["token"]})
        assert response.status_code == 404
        assert client.get("/crm/clients", params={"token": other["token"]}).json()["items"] == []

    def test_invalid_id(self, client, auth):
        assert client.get("/crm/clients/not-an-id", params=auth).status_code == 400


class TestClientSheet:
    def test_detail_fields_merge(self, client, auth, make_client):
        c = make_client()
        response = client.patch(f"/crm/clients/{c['_id']}", params=auth, json={"details": {"phone": "0600000000"}})
        assert response.status_code == 200
        details = response.json()["details"]
        assert details["phone"] == "0600000000"
        assert details["first_name"] == "Jean"

    def test_detail_keys_must_be_identifiers(self, client, auth, make_client):
        c = make_client()
        response = client.patch(f"/crm/clients/{c['_id']}", params=auth, json={"details": {"a.b": 1}})
        assert response.status_code == 400

    def test_delete_does_not_cascade(self, client, auth, make_client):
        c = make_client()
        client.post("/projects", params=auth, json={"categorie": "Magasin", "origine": "Vitrine", "client_id": c["_id"]})
        client.delete(f"/crm/clients/{c['_id']}", params=auth)
        assert client.get(f"/crm/clients/{c['_id']}", params=auth).status_code == 404
        assert len(client.get("/projects", params={**auth, "client_id": c["_id"]}).json()) == 1

    def test_summary_counts(self, client, auth, make_client):
        c = make_client()
        client.post("/projects", params=auth, json={"categorie": "Magasin", "origine": "Vitrine", "client_id": c["_id"]})
        client.post("/tasks", params=auth, json={"title": "Rappeler", "client_id": c["_id"]})
        summary = client.get(f"/crm/clients/{c['_id']}/summary", params=auth).json()
        assert summary == {"projects": 1, "tasks": 1, "appointments": 0}


class TestProperties:
    def test_main_address_is_first_property(self, client, auth, make_client):
        c = make_client()
        props = client.get(f"/crm/clients/{c['_id']}/properties", params=auth).json()
        assert props == [{"id": "main", "number": 1, "address": "8 Boulevard du Port 80000 Amiens", "is_main": True}]

    def test_add_update_remove(self, client, auth, make_client):
        c = make_client()
        url = f"/crm/clients/{c['_id']}/properties"
        props = client.post(url, params=auth, json={"address": "2 rue des Lilas", "usage": "Résidence secondaire"}).json()
        assert [p["number"] for p in props] == [1, 2]
        assert props[1]["is_main"] is False

        new_id = props[1]["id"]
        props = client.put(f"{url}/{new_id}", params=auth, json={"address": "4 rue des Lilas"}).json()
        assert props[1]["address"] == "4 rue des Lilas"
        assert props[1]["usage"] == "Résidence secondaire"

        addresses = client.get(f"/crm/clients/{c['_id']}/addresses", params=auth).json()
        assert addresses == ["8 Boulevard du Port 80000 Amiens", "4 rue des Lilas"]

        props = client.delete(f"{url}/{new_id}", params=auth).json()
        assert len(props) == 1
        assert client.delete(f"{url}/{new_id}", params=auth).status_code == 404


class TestContacts:
    def test_add_and_remove_external_contact(self, client, auth, make_client):
        c = make_client()
        url = f"/crm/clients/{c['_id']}/contacts/external"
        contact = client.post(url, params=auth, json={"first_name": "Marie", "last_name": "Martin"}).json()
        assert contact["type"] == "Conjoint / Conjointe"

        details = client.get(f"/crm/clients/{c['_id']}", params=auth).json()["details"]
        assert details["external_contacts"][0]["id"] == contact["id"]

        assert client.delete(f"{url}/{contact['id']}", params=auth).status_code == 200
        assert client.delete(f"{url}/{contact['id']}", params=auth).status_code == 404

    def test_unknown_contact_kind(self, client, auth, make_client):
        c = make_client()
        response = client.post(f"/crm/clients/{c['_id']}/contacts/friends", params=auth, json={"first_name": "A", "last_name": "B"})
        assert response.status_code == 422

    def test_properties_without_id(self, client, auth, make_client):
        c = make_client()
        client.patch(f"/crm/clients/{c['_id']}", params=auth, json={"details": {"properties": [{"number": 1, "address": "1 rue Sans Id"}]}})
        url = f"/crm/clients/{c['_id']}/properties"
        assert client.put(f"{url}/missing", params=auth, json={"address": "x"}).status_code == 404
        assert client.delete(f"{url}/missing", params=auth).status_code == 404
