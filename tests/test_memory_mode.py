import json
import os

import pytest

import routers.salary as salary_api
from config import config


def write_document(path, collections):
    path.write_text(json.dumps({
        "payroll_teachers": [{"id": 1, "name": "Nimal Perera"}],
        "payroll_classes": [{"id": 1, "name": "Class A", "instituteFeePercentage": 10}],
        "payroll_collections": collections,
        "payroll_deductions": [],
    }), encoding="utf-8")


def collection(cid, amount, day):
    return {"id": cid, "date": f"2026-03-{day:02d}T16:00:00", "teacherId": 1, "classId": 1,
            "amount": amount, "studentCount": 10}


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    path = tmp_path / "payroll_export.json"
    write_document(path, [collection(1, 500, 3)])
    monkeypatch.setattr(config, "PAYROLL_BACKEND", "memory")
    monkeypatch.setattr(config, "MEMORY_STORE_PATH", str(path))
    monkeypatch.setattr(salary_api, "_memory_db", None)
    monkeypatch.setattr(salary_api, "_memory_mtime", None)
    return path


def march_total(client):
    resp = client.get("/api/v1/salary", params={"date": "2026-03-01"})
    assert resp.status_code == 200
    [report] = resp.json()
    return report["stats"]["totalCollection"]


def test_reports_follow_the_exported_document(client, store_path):
    assert march_total(client) == pytest.approx(500)

    write_document(store_path, [collection(1, 500, 3), collection(2, 300, 10)])
    later = os.path.getmtime(store_path) + 10
    os.utime(store_path, (later, later))

    assert march_total(client) == pytest.approx(800)


def test_data_entry_is_rejected(client, store_path):
    resp = client.post("/api/v1/collections", json={
        "date": "2026-03-05T10:00:00", "teacher_id": 1, "class_id": 1,
        "amount": 100, "student_count": 1,
    })
    assert resp.status_code == 409

    assert client.post("/api/v1/teachers", json={"name": "Kamal Silva", "phone": "0711111111"}).status_code == 409
    assert client.post("/api/v1/deductions", json={
        "teacher_id": 1, "type": "ADVANCE", "amount": 10, "date": "2026-03-01T00:00:00",
    }).status_code == 409

    assert march_total(client) == pytest.approx(500)


def test_null_numbers_in_document(client, store_path):
    store_path.write_text(json.dumps({
        "payroll_teachers": [{"id": 1, "name": "Nimal Perera"}],
        "payroll_classes": [{"id": 1, "name": "Class A", "instituteFeePercentage": None}],
        "payroll_collections": [{**collection(1, 500, 3), "tuteCostPerStudent": None}],
    }), encoding="utf-8")

    [report] = client.get("/api/v1/salary", params={"date": "2026-03-01"}).json()
    assert report["stats"]["netPay"] == pytest.approx(500)


def test_broken_document_fails_calculation(client, store_path):
    store_path.write_text(json.dumps({
        "payroll_collections": [{"id": 1, "date": "03/03/2026", "teacherId": 1, "classId": 1}],
    }), encoding="utf-8")

    resp = client.get("/api/v1/salary", params={"date": "2026-03-01"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Calculation failed"}


def test_missing_document_fails_calculation(client, store_path):
    os.remove(store_path)
    resp = client.get("/api/v1/salary", params={"date": "2026-03-01"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Calculation failed"}
