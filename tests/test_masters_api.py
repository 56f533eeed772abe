import pytest
from werkzeug.security import check_password_hash

from models.masters import ClassMaster, Teacher


def make_teacher(client, name="Nimal Perera", phone="0771234567"):
    resp = client.post("/api/v1/teachers", json={"name": name, "phone": phone})
    assert resp.status_code == 200
    return resp.json()


def make_class(client, name="Class A", pct=10):
    resp = client.post("/api/v1/classes", json={"name": name, "fee_per_student": 1500, "institute_fee_percentage": pct})
    assert resp.status_code == 200
    return resp.json()


def add_collection(client, teacher_id, class_id, date="2026-03-03T16:00:00", amount=500):
    return client.post("/api/v1/collections", json={
        "date": date, "teacher_id": teacher_id, "class_id": class_id,
        "amount": amount, "student_count": 10,
    })


# =======================
# CLASSES
# =======================

def test_create_and_list_classes(client):
    cls = make_class(client)
    assert cls["institute_fee_percentage"] == 10

    resp = client.get("/api/v1/classes")
    assert [c["name"] for c in resp.json()] == ["Class A"]


def test_duplicate_class_rejected(client):
    make_class(client)
    resp = client.post("/api/v1/classes", json={"name": "Class A"})
    assert resp.status_code == 400


def test_institute_fee_percentage_must_be_0_to_100(client):
    resp = client.post("/api/v1/classes", json={"name": "Bad", "institute_fee_percentage": 120})
    assert resp.status_code == 422
    resp = client.post("/api/v1/classes", json={"name": "Bad", "institute_fee_percentage": -1})
    assert resp.status_code == 422


def test_update_class(client):
    cls = make_class(client)
    resp = client.patch(f"/api/v1/classes/{cls['id']}", json={"institute_fee_percentage": 25})
    assert resp.status_code == 200
    assert resp.json()["institute_fee_percentage"] == 25
    assert resp.json()["name"] == "Class A"


def test_class_in_use_cannot_be_deleted(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    add_collection(client, teacher["id"], cls["id"])

    assert client.delete(f"/api/v1/classes/{cls['id']}").status_code == 400

    unused = make_class(client, name="Class B")
    assert client.delete(f"/api/v1/classes/{unused['id']}").json() == {"success": True}
    assert client.delete("/api/v1/classes/999").status_code == 404


def test_class_with_rate_cannot_be_deleted(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    client.post("/api/v1/rates", json={"teacher_id": teacher["id"], "class_id": cls["id"], "percentage": 60})
    assert client.delete(f"/api/v1/classes/{cls['id']}").status_code == 400


# =======================
# TEACHERS & RATES
# =======================

def test_new_teacher_gets_hashed_default_login(client, db_session):
    teacher = make_teacher(client)
    assert teacher["username"] == "Nimal Perera"
    assert "password_hash" not in teacher

    row = db_session.query(Teacher).filter(Teacher.id == teacher["id"]).first()
    assert row.password_hash != "0771234567"
    assert check_password_hash(row.password_hash, "0771234567")


def test_update_teacher_credentials(client, db_session):
    teacher = make_teacher(client)
    resp = client.put(f"/api/v1/teachers/{teacher['id']}/credentials",
                      json={"username": "nimal", "password": "s3cret"})
    assert resp.status_code == 200

    row = db_session.query(Teacher).filter(Teacher.id == teacher["id"]).first()
    assert row.username == "nimal"
    assert check_password_hash(row.password_hash, "s3cret")


def test_teacher_with_history_cannot_be_deleted(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    add_collection(client, teacher["id"], cls["id"])
    assert client.delete(f"/api/v1/teachers/{teacher['id']}").status_code == 400


def test_delete_teacher_removes_rates(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    client.post("/api/v1/rates", json={"teacher_id": teacher["id"], "class_id": cls["id"], "percentage": 60})

    assert client.delete(f"/api/v1/teachers/{teacher['id']}").json() == {"success": True}
    assert client.get(f"/api/v1/teachers/{teacher['id']}").status_code == 404
    # class is free again once the rate is gone
    assert client.delete(f"/api/v1/classes/{cls['id']}").status_code == 200


def test_rate_upsert_updates_existing_row(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    first = client.post("/api/v1/rates", json={"teacher_id": teacher["id"], "class_id": cls["id"], "percentage": 60}).json()
    second = client.post("/api/v1/rates", json={"teacher_id": teacher["id"], "class_id": cls["id"], "percentage": 70}).json()

    assert first["id"] == second["id"]
    assert second["percentage"] == 70

    rates = client.get(f"/api/v1/teachers/{teacher['id']}").json()["rates"]
    assert len(rates) == 1
    assert rates[0]["class_val"]["name"] == "Class A"


# =======================
# COLLECTIONS & DEDUCTIONS
# =======================

def test_collection_validation(client):
    teacher = make_teacher(client)
    cls = make_class(client)

    assert add_collection(client, teacher["id"], cls["id"], amount=-5).status_code == 422
    assert add_collection(client, 999, cls["id"]).status_code == 404
    assert add_collection(client, teacher["id"], 999).status_code == 404


def test_list_collections_for_one_day(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    add_collection(client, teacher["id"], cls["id"], date="2026-03-03T08:00:00")
    add_collection(client, teacher["id"], cls["id"], date="2026-03-03T23:30:00")
    add_collection(client, teacher["id"], cls["id"], date="2026-03-04T08:00:00")

    day = client.get("/api/v1/collections", params={"date": "2026-03-03"}).json()
    assert len(day) == 2
    assert day[0]["teacher"]["name"] == "Nimal Perera"
    assert day[0]["class_val"]["name"] == "Class A"

    assert len(client.get("/api/v1/collections").json()) == 3
    assert client.get("/api/v1/collections", params={"date": "03/03/2026"}).status_code == 400


def test_update_and_delete_collection(client):
    teacher = make_teacher(client)
    cls = make_class(client)
    created = add_collection(client, teacher["id"], cls["id"]).json()

    resp = client.patch(f"/api/v1/collections/{created['id']}", json={"amount": 750, "student_count": 15})
    assert resp.json()["amount"] == 750
    assert resp.json()["student_count"] == 15

    assert client.delete(f"/api/v1/collections/{created['id']}").json() == {"success": True}
    assert client.delete(f"/api/v1/collections/{created['id']}").status_code == 404


def test_staff_can_enter_collections_but_not_deductions(staff_client, db_session):
    db_session.add_all([Teacher(id=1, name="Nimal Perera", username="Nimal Perera"), ClassMaster(id=1, name="Class A")])
    db_session.commit()

    assert add_collection(staff_client, 1, 1).status_code == 200
    resp = staff_client.post("/api/v1/deductions", json={
        "teacher_id": 1, "type": "ADVANCE", "amount": 10, "date": "2026-03-01T00:00:00",
    })
    assert resp.status_code == 403


def test_deductions_filtered_by_month(client):
    teacher = make_teacher(client)
    for date in ["2026-03-01T00:00:00", "2026-03-31T23:59:59", "2026-04-01T00:00:00"]:
        client.post("/api/v1/deductions", json={
            "teacher_id": teacher["id"], "type": "ADVANCE", "amount": 10, "date": date,
        })

    march = client.get("/api/v1/deductions", params={"teacher_id": teacher["id"], "date": "2026-03-09"}).json()
    assert [d["date"] for d in march] == ["2026-03-01T00:00:00", "2026-03-31T23:59:59"]

    first = march[0]["id"]
    assert client.delete(f"/api/v1/deductions/{first}").json() == {"success": True}
    assert client.delete(f"/api/v1/deductions/{first}").status_code == 404


def test_offset_timestamps_stored_as_utc(client):
    teacher = make_teacher(client)
    cls = make_class(client)

    created = add_collection(client, teacher["id"], cls["id"], date="2026-04-01T02:00:00+05:30").json()
    assert created["date"] == "2026-03-31T20:30:00"

    updated = client.patch(f"/api/v1/collections/{created['id']}", json={"date": "2026-03-10T00:00:00Z"}).json()
    assert updated["date"] == "2026-03-10T00:00:00"

    deduction = client.post("/api/v1/deductions", json={
        "teacher_id": teacher["id"], "type": "ADVANCE", "amount": 10, "date": "2026-04-01T01:00:00+02:00",
    }).json()
    assert deduction["date"] == "2026-03-31T23:00:00"

    [march] = client.get("/api/v1/salary", params={"date": "2026-03-01"}).json()
    assert march["stats"]["totalCollection"] == pytest.approx(500)
    assert march["stats"]["manualDeductions"] == pytest.approx(10)
