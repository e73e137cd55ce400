from sqlalchemy import Column, String

from conference_attendance.db.base import Base, BaseModel


class Participant(Base, BaseModel):
    __tablename__ = "participants"

    user_id = Column(String(15), unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False)

    # Key of the enrollment photo in blob storage; the user id when unset
    reference_image_key = Column(String, nullable=True)

    def __repr__(self):
        return f"<Participant {self.user_id} ({self.email})>"
