import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, BigInteger, DateTime
from luminasign.db import Base

class Media(Base):
    __tablename__ = "media"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    url = Column(String, nullable=False)
    duration_sec = Column(Integer, default=10)
    storage_path = Column(String, nullable=True)
    external_delete_url = Column(String, nullable=True)
    size = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
