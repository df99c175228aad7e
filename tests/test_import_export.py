from io import BytesIO

from openpyxl import Workbook, load_workbook
import pytest

from extensions import db
from models import ActivityLog, Commission, Delegate, Student
from services.errors import ValidationError
from services.import_service import (
    STUDENT_EXPORT_HEADERS, export_commissions, export_students, import_students,
)

HEADERS = ["الاسم_الأول", "الاسم_الثاني", "الاسم_الثالث", "اللقب", "الهاتف", "الدورة", "الوقت", "المندوب"]


def _workbook(rows, headers=HEADERS):
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for r in rows:
        ws.append(r)
    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio


def test_import_skips_duplicates_unknown_delegates_and_bad_choices(ctx, admin):
    f = _workbook([
        # new
        ["منى", "سعد", "فهد", "الحربي", 501234567, "انجليزي", "صباحي", "هدية عوضة"],
        # duplicate of seeded student 1 (hamza variant)
        ["احمد", "علي", "محمد", "الشهري", "0511111111", "حاسوب", "مسائي", "هدية عوضة"],
        # unknown delegate
        ["ليلى", "سعد", "فهد", "الحربي", "0500", "حاسوب", "مسائي", "مجهول"],
        # unknown course
        ["هند", "سعد", "فهد", "الحربي", "0500", "رسم", "مسائي", "هدية عوضة"],
        # blank row is ignored entirely
        [None, None, None, None, None, None, None, None],
        # same name as the first row, different spelling
        ["مُنى", "سعد", "فهد", "الحربي ", "0500", "انجليزي", "مسائي", "هديه عوضه"],
    ])

    result = import_students(f, actor=admin)

    assert result == {"importedCount": 1, "skippedCount": 4}
    student = Student.query.filter_by(first_name="منى").one()
    assert student.phone == "501234567"
    assert student.delegate_id == 4
    assert Commission.query.filter_by(student_id=student.id).count() == 1
    assert db.session.get(Delegate, 4).students == 1

    log = ActivityLog.query.filter_by(action_type="import").one()
    assert "1" in log.description


def test_import_matches_delegate_names_loosely(ctx, admin):
    f = _workbook([["عادل", "سعد", "فهد", "الحربي", "0500", "حاسوب", "مسائي", "  هديه عوضه "]])
    assert import_students(f, actor=admin)["importedCount"] == 1


def test_import_rejects_unreadable_file(ctx, admin):
    with pytest.raises(ValidationError) as exc:
        import_students(BytesIO(b"not a spreadsheet"), actor=admin)
    assert exc.value.code == "invalid_file"


def test_export_students_sheet(ctx, admin):
    filename, data = export_students(actor=admin)
    assert filename.startswith("students_") and filename.endswith(".xlsx")

    ws = load_workbook(BytesIO(data)).active
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == STUDENT_EXPORT_HEADERS
    assert len(rows) == 4
    # newest first
    assert rows[1][0] == 3
    assert rows[1][5] == "خالد سعيد عمر القحطاني"
    assert rows[1][9] == "عبدالملك صالح احمد الحداد"

    assert ActivityLog.query.filter_by(action_type="export", target="students").count() == 1


def test_export_students_filtered(ctx, admin):
    _, data = export_students(search="فاطمة", actor=admin)
    rows = list(load_workbook(BytesIO(data)).active.iter_rows(values_only=True))
    assert len(rows) == 2


def test_export_commissions(ctx, admin):
    _, data = export_commissions(delegate_id=3, actor=admin)
    rows = list(load_workbook(BytesIO(data)).active.iter_rows(values_only=True))
    assert len(rows) == 4
    assert rows[1][5] == "معلقة"
