import enum

from sqlalchemy import Column, Date, String

from conference_attendance.db.base import Base, BaseModel


class ConferenceStatus(str, enum.Enum):
    NOT_COMPLETED = "not_completed"
    COMPLETED = "completed"


class Conference(Base, BaseModel):
    __tablename__ = "conferences"

    conference_id = Column(String(15), unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    scheduled_date = Column(Date, nullable=True)
    status = Column(String, default=ConferenceStatus.NOT_COMPLETED.value, nullable=False)

    def __repr__(self):
        return f"<Conference {self.conference_id} ({self.status})>"
