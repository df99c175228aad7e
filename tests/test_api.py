from io import BytesIO

from openpyxl import Workbook

from extensions import db
from models import Commission, Delegate, Notification, Student


NEW_STUDENT = {
    "firstName": "يوسف",
    "secondName": "أحمد",
    "thirdName": "سالم",
    "lastName": "المالكي",
    "phone": "0544444444",
    "course": "جرافيكس",
    "schedule": "مسائي",
    "delegateId": 5,
}


# =========================
# Auth
# =========================
def test_login_me_logout(app):
    client = app.test_client()

    resp = client.post("/api/auth/login", json={"username": "Manager", "password": "123456"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "manager"

    me = client.get("/api/auth/me").get_json()
    assert me["user"]["username"] == "manager"
    assert me["delegate"]["id"] == 2

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_login_failure_is_json(anon_client):
    resp = anon_client.post("/api/auth/login", json={"username": "admin", "password": "x"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_credentials"


def test_change_password(delegate_client):
    resp = delegate_client.put("/api/auth/password", json={"currentPassword": "bad", "newPassword": "n"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "wrong_password"

    resp = delegate_client.put("/api/auth/password", json={"currentPassword": "123456", "newPassword": "n3w"})
    assert resp.status_code == 200


# =========================
# Students
# =========================
def test_register_and_duplicate(app, manager_client):
    resp = manager_client.post("/api/students", json=NEW_STUDENT)
    assert resp.status_code == 201
    student_id = resp.get_json()["student"]["id"]

    dup = dict(NEW_STUDENT, firstName="يوسف ", secondName="احمد", delegateId=3)
    resp = manager_client.post("/api/students", json=dup)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "duplicate_student"
    assert body["details"]["student_id"] == student_id

    with app.app_context():
        assert db.session.get(Delegate, 5).students == 1
        assert db.session.get(Delegate, 3).students == 3


def test_delegate_registers_for_themselves(app, delegate_client):
    resp = delegate_client.post("/api/students", json=dict(NEW_STUDENT, delegateId=7))
    assert resp.status_code == 201
    assert resp.get_json()["student"]["delegateId"] == 3

    items = delegate_client.get("/api/students").get_json()["items"]
    assert {s["delegateId"] for s in items} == {3}
    assert len(items) == 4


def test_delegate_cannot_edit_or_delete(delegate_client):
    assert delegate_client.put("/api/students/1", json={"phone": "1"}).status_code == 403
    assert delegate_client.delete("/api/students/1").status_code == 403


def test_anonymous_gets_401(anon_client):
    resp = anon_client.get("/api/students")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_student_list_sort_and_search(manager_client):
    items = manager_client.get("/api/students?sort=firstName&direction=asc").get_json()["items"]
    assert [s["firstName"] for s in items] == sorted(s["firstName"] for s in items)

    items = manager_client.get("/api/students?q=القحطاني").get_json()["items"]
    assert [s["id"] for s in items] == [3]


def test_update_and_delete_student(app, manager_client):
    resp = manager_client.put("/api/students/3", json={"lastName": "العمري"})
    assert resp.status_code == 200
    assert resp.get_json()["student"]["lastName"] == "العمري"

    assert manager_client.delete("/api/students/3").status_code == 200
    assert manager_client.delete("/api/students/3").status_code == 404

    with app.app_context():
        assert Commission.query.filter_by(student_id=3).count() == 0


def test_import_and_export_students(app, admin_client):
    wb = Workbook()
    ws = wb.active
    ws.append(["الاسم_الأول", "الاسم_الثاني", "الاسم_الثالث", "اللقب", "الهاتف", "الدورة", "الوقت", "المندوب"])
    ws.append(["سلمى", "ناصر", "علي", "اليامي", "0522222222", "قراءة", "صباحي", "نجلاء نصار"])
    ws.append(["أحمد", "علي", "محمد", "الشهري", "0511111111", "حاسوب", "مسائي", "نجلاء نصار"])
    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)

    resp = admin_client.post(
        "/api/students/import",
        data={"file": (bio, "students.xlsx")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["importedCount"] == 1
    assert body["skippedCount"] == 1

    with app.app_context():
        assert Student.query.filter_by(first_name="سلمى").one().delegate_id == 7

    resp = admin_client.get("/api/students/export")
    assert resp.status_code == 200
    assert resp.mimetype.endswith("spreadsheetml.sheet")


def test_import_requires_xlsx(admin_client):
    resp = admin_client.post(
        "/api/students/import",
        data={"file": (BytesIO(b"a,b"), "students.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_file"


# =========================
# Commissions
# =========================
def test_commission_flow(manager_client, delegate_client):
    resp = manager_client.put("/api/commissions/3/student-status", json={"studentStatus": "مكتمل"})
    assert resp.get_json()["commission"]["status"] == "مؤكدة"

    resp = manager_client.put("/api/commissions/3/status", json={"status": "مدفوعة"})
    commission = resp.get_json()["commission"]
    assert commission["status"] == "مدفوعة"
    assert commission["paidDate"] is not None

    notes = delegate_client.get("/api/notifications").get_json()
    assert notes["unreadCount"] >= 1
    assert any(n["relatedModule"] == "commissions" for n in notes["items"])


def test_commission_status_validation(manager_client):
    resp = manager_client.put("/api/commissions/3/status", json={"status": "?"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_choice"


def test_delegate_sees_only_own_commissions(delegate_client, app):
    with app.app_context():
        db.session.add(Commission(
            id=10, student_id=50, delegate_id=4, student_name="x", course="حاسوب", amount=500,
        ))
        db.session.commit()

    body = delegate_client.get("/api/commissions").get_json()
    assert {c["delegateId"] for c in body["items"]} == {3}
    assert body["totals"]["مدفوعة"] == 500

    assert delegate_client.put("/api/commissions/3/status", json={"status": "مدفوعة"}).status_code == 403


# =========================
# Users, network, bank accounts
# =========================
def test_users_admin_only(manager_client, admin_client):
    assert manager_client.get("/api/users").status_code == 403
    body = admin_client.get("/api/users").get_json()
    assert body["count"] == 7
    assert "passwordHash" not in body["items"][0]


def test_delegate_recruits_into_own_network(delegate_client):
    resp = delegate_client.post("/api/users", json={
        "fullName": "سامي", "username": "sami", "password": "p", "confirmPassword": "p", "role": "admin",
    })
    assert resp.status_code == 201
    user = resp.get_json()["user"]
    assert user["role"] == "delegate"
    assert user["referredById"] == 3

    network = delegate_client.get("/api/users/network").get_json()["items"]
    assert [r["user"]["username"] for r in network] == ["hadiya", "mhajri", "sami"]


def test_toggle_user(admin_client, app):
    resp = admin_client.post("/api/users/7/toggle")
    assert resp.get_json()["user"]["isActive"] is False

    client = app.test_client()
    resp = client.post("/api/auth/login", json={"username": "najla", "password": "123456"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "inactive_account"


def test_self_profile_edit_cannot_change_role(delegate_client, admin_client):
    resp = delegate_client.put("/api/users/3", json={"role": "admin", "phone": "0590000000"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "delegate"
    assert resp.get_json()["user"]["delegate"]["phone"] == "0590000000"

    assert delegate_client.put("/api/users/4", json={"phone": "1"}).status_code == 403


def test_bank_account(delegate_client):
    resp = delegate_client.put("/api/bankAccounts", json={
        "bankName": "بنك الراجحي", "accountHolder": "ABDULMALEK", "bankAccount": "SA11",
    })
    assert resp.status_code == 200
    assert resp.get_json()["account"]["id"] == 1

    items = delegate_client.get("/api/bankAccounts").get_json()["items"]
    assert [a["bankAccount"] for a in items] == ["SA11"]


# =========================
# Reports, logs, settings
# =========================
def test_reports(manager_client, delegate_client):
    dash = manager_client.get("/api/reports/dashboard").get_json()
    assert dash["totalStudents"] == 3

    perf = manager_client.get("/api/reports/performance").get_json()
    assert len(perf["rows"]) == 5

    assert manager_client.get("/api/reports/courses").status_code == 200
    assert delegate_client.get("/api/reports/dashboard").status_code == 403

    mine = delegate_client.get("/api/reports/delegate").get_json()
    assert mine["delegate"]["id"] == 3


def test_logs_admin_only(admin_client, manager_client):
    assert manager_client.get("/api/logs").status_code == 403

    body = admin_client.get("/api/logs?action=login").get_json()
    assert body["total"] >= 1
    assert all(item["actionType"] == "login" for item in body["items"])

    resp = admin_client.get("/api/logs/export")
    assert resp.status_code == 200


def test_backup_endpoints(admin_client, manager_client):
    assert manager_client.post("/api/settings/backups").status_code == 403

    resp = admin_client.post("/api/settings/backups")
    assert resp.status_code == 201
    name = resp.get_json()["name"]

    listed = admin_client.get("/api/settings/backups").get_json()["items"]
    assert [b["name"] for b in listed] == [name]

    download = admin_client.get(f"/api/settings/backups/{name}")
    assert download.status_code == 200

    resp = admin_client.post(f"/api/settings/backups/{name}/restore")
    assert resp.status_code == 200
    assert resp.get_json()["restored"]["students"] == 3

    resp = admin_client.post(
        "/api/settings/backups/import",
        data={"file": (BytesIO(download.data), "backup.json")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.get_json()["name"] == name

    resp = admin_client.post(
        "/api/settings/backups/import",
        data={"file": (BytesIO(b"{}"), "backup.json")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_backup"

    assert admin_client.delete(f"/api/settings/backups/{name}").status_code == 200
    assert admin_client.get(f"/api/settings/backups/{name}").status_code == 404


def test_theme(admin_client, delegate_client):
    assert delegate_client.get("/api/settings/theme").get_json()["theme"] == "default"
    assert delegate_client.put("/api/settings/theme", json={"theme": "dark"}).status_code == 403
    assert admin_client.put("/api/settings/theme", json={"theme": "green"}).get_json()["theme"] == "green"
    assert delegate_client.get("/api/settings/theme").get_json()["theme"] == "green"


def test_notifications_endpoints(manager_client):
    manager_client.post("/api/students", json=NEW_STUDENT)

    body = manager_client.get("/api/notifications").get_json()
    assert body["unreadCount"] == 1
    note_id = body["items"][0]["id"]

    assert manager_client.post(f"/api/notifications/{note_id}/read").status_code == 200
    assert manager_client.get("/api/notifications/unread-count").get_json()["count"] == 0

    assert manager_client.delete(f"/api/notifications/{note_id}").status_code == 200
    assert manager_client.delete(f"/api/notifications/{note_id}").status_code == 404

    assert manager_client.delete("/api/notifications").get_json()["deleted"] == 0


def test_notifications_of_other_users_are_not_reachable(app, manager_client, delegate_client):
    with app.app_context():
        note = Notification(title="خاص", message="لك", type="info", user_id=3)
        db.session.add(note)
        db.session.commit()
        note_id = note.id

    assert manager_client.post(f"/api/notifications/{note_id}/read").status_code == 404
    assert manager_client.delete(f"/api/notifications/{note_id}").status_code == 404

    with app.app_context():
        kept = db.session.get(Notification, note_id)
        assert kept is not None
        assert kept.is_read is False

    assert delegate_client.post(f"/api/notifications/{note_id}/read").status_code == 200


def test_malformed_delegate_ids_are_rejected(admin_client, manager_client):
    resp = manager_client.put("/api/students/1", json={"delegateId": "abc"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "unknown_delegate"

    account = {"bankName": "بنك الراجحي", "accountHolder": "X", "bankAccount": "SA99"}
    resp = admin_client.put("/api/bankAccounts", json=dict(account, delegateId="x"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "unknown_delegate"

    resp = admin_client.put("/api/bankAccounts", json=dict(account, delegateId=99))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "unknown_delegate"
