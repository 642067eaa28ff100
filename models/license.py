from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class License(Base):
    __tablename__ = "licenses"

    id = Column(String(64), primary_key=True, index=True)
    license_number = Column(String(32), unique=True, nullable=False, index=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), unique=True, nullable=False)
    holder_name = Column(String(256), nullable=False)
    nid = Column(String(17), nullable=False)
    bin = Column(String(13), nullable=True)
    address = Column(Text, nullable=True)
    issue_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("Application", back_populates="license")
