import enum

from sqlalchemy import Column, String, UniqueConstraint

from conference_attendance.db.base import Base, BaseModel


class AttendanceStatus(str, enum.Enum):
    ABSENT = "absent"
    PRESENT = "present"


class AttendanceRecord(Base, BaseModel):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("conference_id", "user_id", name="uq_attendance_conference_user"),
    )

    conference_id = Column(String(15), index=True, nullable=False)
    user_id = Column(String(15), index=True, nullable=False)
    status = Column(String, default=AttendanceStatus.ABSENT.value, nullable=False)

    # Copied from the participant at registration time
    email = Column(String, nullable=True)

    def __repr__(self):
        return f"<AttendanceRecord {self.conference_id}/{self.user_id} {self.status}>"
