"""Agenda calendar math and the week/day routes."""
from datetime import date

import pytest

import agenda


class TestWeek:
    def test_week_starts_on_monday(self):
        days = agenda.week_days(date(2026, 10, 21), today=date(2026, 10, 21))
        assert [d["label"] for d in days][:2] == ["lundi", "mardi"]
        assert days[0]["full_date"] == "19/10/2026"
        assert days[6]["full_date"] == "25/10/2026"
        assert days[2]["is_today"] is True
        assert sum(d["is_today"] for d in days) == 1

    def test_sunday_belongs_to_previous_monday(self):
        days = agenda.week_days(date(2026, 10, 25))
        assert days[0]["full_date"] == "19/10/2026"

    def test_range_label_uses_unpadded_day_and_padded_month(self):
        days = agenda.week_days(date(2026, 3, 5))
        assert agenda.date_range_label(days) == "2/03 - 8/03"

    def test_range_across_months(self):
        days = agenda.week_days(date(2026, 10, 29))
        assert agenda.date_range_label(days) == "26/10 - 1/11"
        assert days[6]["month"] == "novembre"

    def test_shift_week(self):
        assert agenda.shift_week(date(2026, 10, 21), 1) == date(2026, 10, 28)
        assert agenda.shift_week(date(2026, 10, 21), -1) == date(2026, 10, 14)


class TestPosition:
    @pytest.mark.parametrize("start,end,top,height", [
        ("08:00", "08:45", 0, 60),
        ("09:30", "11:00", 120, 120),
        ("14:00", "18:00", 480, 320),
    ])
    def test_slot_geometry(self, start, end, top, height):
        assert agenda.position(start, end) == {"top": top, "height": height}

    def test_slot_before_grid_is_not_clamped(self):
        assert agenda.position("07:00", "08:00")["top"] == -80

    def test_visible_hours(self):
        assert agenda.HOURS[0] == 8 and agenda.HOURS[-1] == 18


class TestFilter:
    items = [
        {"title": "Métré cuisine", "client_name": "MARTIN JEAN", "collaborator": {"name": "Thomas"}},
        {"title": "R1", "client_name": "DUPONT ANNE", "collaborator": {"name": "Céline"}},
    ]

    def test_search_matches_title_or_client(self):
        assert len(agenda.filter_appointments(self.items, "métré")) == 1
        assert len(agenda.filter_appointments(self.items, "dupont")) == 1
        assert len(agenda.filter_appointments(self.items, "")) == 2

    def test_collaborator_is_exact(self):
        assert agenda.filter_appointments(self.items, collaborator="Céline")[0]["title"] == "R1"
        assert agenda.filter_appointments(self.items, collaborator="Cél") == []


class TestDates:
    def test_iso_to_fr(self):
        assert agenda.iso_to_fr("2026-03-05") == "05/03/2026"
        assert agenda.iso_to_fr("") == ""

    def test_invalid_iso_date(self):
        with pytest.raises(ValueError):
            agenda.iso_to_fr("05/03/2026")


class TestRoutes:
    def _appointment(self, client, auth, client_id, **overrides):
        body = {
            "client_id": client_id,
            "client_name": "MARTIN JEAN",
            "title": "Métré cuisine",
            "type": "Métré",
            "date": "2026-10-22",
            "start_time": "09:30",
            "end_time": "11:00",
            "location": "Domicile",
        }
        body.update(overrides)
        return client.post("/appointments", params=auth, json=body)

    def test_create_appointment_stores_display_date(self, client, auth, make_client):
        c = make_client()
        response = self._appointment(client, auth, c["_id"])
        assert response.status_code == 200
        data = response.json()
        assert data["date"] == "22/10/2026"
        assert data["status"] == "confirmé"
        assert data["collaborator"]["name"] == "Ana Durand"

    def test_end_before_start_is_rejected(self, client, auth, make_client):
        c = make_client()
        response = self._appointment(client, auth, c["_id"], start_time="11:00", end_time="10:00")
        assert response.status_code == 400

    def test_title_is_required(self, client, auth, make_client):
        c = make_client()
        assert self._appointment(client, auth, c["_id"], title="").status_code == 422

    def test_project_name_is_looked_up(self, client, auth, make_client):
        c = make_client()
        project = client.post("/projects", params=auth, json={
            "categorie": "Magasin", "origine": "Vitrine", "client_id": c["_id"],
        }).json()
        data = self._appointment(client, auth, c["_id"], project_id=project["_id"]).json()
        assert data["project_name"] == "Pose d'une cuisine"

    def test_week_view_places_appointments(self, client, auth, make_client):
        c = make_client()
        self._appointment(client, auth, c["_id"])
        self._appointment(client, auth, c["_id"], date="2026-11-05", title="Pose")
        week = client.get("/agenda/week", params={**auth, "date": "2026-10-21"}).json()
        assert week["range_label"] == "19/10 - 25/10"
        assert week["next"] == "2026-10-28"
        thursday = week["days"][3]
        assert thursday["full_date"] == "22/10/2026"
        assert thursday["appointments"][0]["position"] == {"top": 120, "height": 120}
        assert sum(len(d["appointments"]) for d in week["days"]) == 1

    def test_day_view(self, client, auth, make_client):
        c = make_client()
        self._appointment(client, auth, c["_id"])
        day = client.get("/agenda/day", params={**auth, "date": "2026-10-22"}).json()
        assert day["weekday"] == "jeudi"
        assert day["label"] == "22 octobre 2026"
        assert len(day["appointments"]) == 1

    def test_week_view_filters_by_collaborator(self, client, auth, make_client):
        c = make_client()
        self._appointment(client, auth, c["_id"], collaborator={"name": "Thomas"})
        week = client.get("/agenda/week", params={**auth, "date": "2026-10-21", "collaborator": "Céline"}).json()
        assert all(d["appointments"] == [] for d in week["days"])

    def test_invalid_date_param(self, client, auth):
        assert client.get("/agenda/week", params={**auth, "date": "demain"}).status_code == 400

    def test_client_appointments_list_and_delete(self, client, auth, make_client):
        c = make_client()
        rdv = self._appointment(client, auth, c["_id"]).json()
        assert len(client.get("/appointments", params={**auth, "client_id": c["_id"]}).json()) == 1
        client.delete(f"/appointments/{rdv['_id']}", params=auth)
        assert client.get("/appointments", params={**auth, "client_id": c["_id"]}).json() == []
