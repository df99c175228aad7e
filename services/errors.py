"""Service-level errors.

Every error carries a machine ``code`` and an Arabic ``message`` that the
HTTP layer shows to the user as-is.
"""


class ServiceError(ValueError):
    code = "error"
    status_code = 400

    def __init__(self, message, code=None, **details):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self):
        data = {"error": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(ServiceError):
    code = "validation_error"


class DuplicateStudentError(ValidationError):
    code = "duplicate_student"

    def __init__(self, student):
        message = (
            "خطأ! الطالب مسجل مسبقاً\n"
            f"الاسم الرباعي: {student.full_name}\n"
            f"رقم الهاتف المسجل: {student.phone}\n"
            f"تاريخ التسجيل: {student.registration_date.isoformat()}"
        )
        super().__init__(
            message,
            student_id=student.id,
            full_name=student.full_name,
            phone=student.phone,
            registration_date=student.registration_date.isoformat(),
        )


class AuthError(ServiceError):
    code = "auth_error"
    status_code = 401


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = 404
