from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class Applicant(Base):
    __tablename__ = "applicants"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    applicant_type = Column(String(64), nullable=False, default="General")
    full_name = Column(String(256), nullable=False)
    nid = Column(String(17), nullable=False)
    tin = Column(String(12), nullable=False)
    bin = Column(String(13), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    nationality = Column(String(128), nullable=True)
    address = Column(Text, nullable=True)
    cell_number = Column(String(16), nullable=True)
    email = Column(String(320), nullable=True)
    designation = Column(String(256), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    education = relationship(
        "EducationRecord",
        back_populates="applicant",
        cascade="all, delete-orphan",
        order_by="EducationRecord.position",
    )
    applications = relationship("Application", back_populates="applicant")


class EducationRecord(Base):
    __tablename__ = "education_degrees"

    id = Column(String(64), primary_key=True, index=True)
    applicant_id = Column(String(64), ForeignKey("applicants.id", ondelete="CASCADE"), nullable=False, index=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    degree_name = Column(String(256), nullable=False)
    achievement_year = Column(Integer, nullable=False)
    educational_institute = Column(String(256), nullable=False)
    grade = Column(String(64), nullable=False)
    special_achievement = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    applicant = relationship("Applicant", back_populates="education")
