from datetime import datetime
from typing import Optional, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from coachfee.core.config import DEFAULT_COACHING_NAME, DEFAULT_SMS_TEMPLATE
from coachfee.utils.phone import normalize_phone

PaymentStatus = Literal["paid", "unpaid"]
RecipientRole = Literal["student", "guardian", "teacher"]
DeliveryStatus = Literal["sent", "failed"]

PHONE_FIELDS = (
    ("student", "studentPhone"),
    ("guardian", "guardianPhone"),
    ("teacher", "teacherPhone"),
)


# ---------------------------
# Student
# ---------------------------
class Student(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    student_phone: Optional[str] = Field(default=None, alias="studentPhone")
    guardian_phone: Optional[str] = Field(default=None, alias="guardianPhone")
    teacher_phone: Optional[str] = Field(default=None, alias="teacherPhone")
    active: bool = True

    @field_validator("name", mode="before")
    def name_or_blank(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("student_phone", "guardian_phone", "teacher_phone", mode="before")
    def stringify_phone(cls, v):
        # numbers typed into the console are stored as ints
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @classmethod
    def from_doc(cls, doc_id: str, data: dict) -> "Student":
        data = dict(data or {})
        if data.get("active") is None:
            data.pop("active", None)
        return cls.model_validate({**data, "id": doc_id})

    def phone_for(self, role: str) -> Optional[str]:
        return {
            "student": self.student_phone,
            "guardian": self.guardian_phone,
            "teacher": self.teacher_phone,
        }.get(role)

    def contacts(self) -> List[dict]:
        """Per-role raw number, normalized number and validity."""
        out = []
        for role, _ in PHONE_FIELDS:
            raw = self.phone_for(role)
            normalized = normalize_phone(raw)
            out.append({
                "role": role,
                "raw": raw,
                "normalized": normalized,
                "valid": normalized is not None,
            })
        return out


# ---------------------------
# Settings (singleton)
# ---------------------------
class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    coaching_name: str = Field(default=DEFAULT_COACHING_NAME, alias="coachingName")
    sms_template: str = Field(default=DEFAULT_SMS_TEMPLATE, alias="smsTemplate")
    send_to_student: bool = Field(default=True, alias="sendToStudent")
    send_to_guardian: bool = Field(default=True, alias="sendToGuardian")
    send_to_teacher: bool = Field(default=False, alias="sendToTeacher")

    @classmethod
    def from_doc(cls, doc_id: Optional[str], data: dict) -> "Settings":
        data = dict(data or {})
        # Older rows stored the template under smsTemplateBn
        if not data.get("smsTemplate") and data.get("smsTemplateBn"):
            data["smsTemplate"] = data["smsTemplateBn"]
        for key in ("coachingName", "smsTemplate"):
            if not isinstance(data.get(key), str) or not data[key].strip():
                data.pop(key, None)
        # an unset toggle falls back to its default
        for key in ("sendToStudent", "sendToGuardian", "sendToTeacher"):
            if data.get(key) is None:
                data.pop(key, None)
        return cls.model_validate({**data, "id": doc_id})

    def to_doc(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"})

    def enabled(self, role: str) -> bool:
        return {
            "student": self.send_to_student,
            "guardian": self.send_to_guardian,
            "teacher": self.send_to_teacher,
        }.get(role, False)

    def recipients_for(self, student: Student) -> List[Tuple[str, Optional[str]]]:
        return [(role, student.phone_for(role)) for role, _ in PHONE_FIELDS if self.enabled(role)]


# ---------------------------
# Payments
# ---------------------------
class NormalizedPayment(BaseModel):
    """Derived view of one payment row; never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str
    student_id: str
    month: str
    status: PaymentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


class MarkPaidRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias="studentId", min_length=1)
    month: str
    admin_email: EmailStr = Field(alias="adminEmail")


class MarkPaidResult(BaseModel):
    committed: bool
    notified: bool


# ---------------------------
# SMS audit
# ---------------------------
class DispatchOutcome(BaseModel):
    role: RecipientRole
    to_phone: Optional[str] = None
    status: DeliveryStatus
    response: str = ""

    @property
    def sent(self) -> bool:
        return self.status == "sent"


class SmsLogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    student_id: str = Field(alias="studentId")
    month: str
    recipient_type: RecipientRole = Field(alias="recipientType")
    to_phone: Optional[str] = Field(default=None, alias="toPhone")
    message: str
    status: DeliveryStatus
    provider_response: str = Field(default="", alias="providerResponse")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @field_validator("created_at", mode="before")
    def iso_created_at(cls, v):
        if isinstance(v, datetime):
            return v.isoformat()
        return v

    @classmethod
    def from_doc(cls, doc_id: str, data: dict) -> "SmsLogEntry":
        return cls.model_validate({**(data or {}), "id": doc_id})

    def to_doc(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"})
