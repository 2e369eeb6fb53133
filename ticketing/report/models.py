# ticketing/report/models.py
from sqlalchemy import Column, DateTime, Integer, String, Text
from ticketing.core.database import Base


class GateReport(Base):
    __tablename__ = "gate_reports"

    id = Column(Integer, primary_key=True, index=True)
    received_at = Column(DateTime(timezone=True), nullable=False, index=True)
    gate_id = Column(String, nullable=True, index=True)
    content_type = Column(String, nullable=True)
    body = Column(Text, nullable=False)
