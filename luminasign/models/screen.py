import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from luminasign.db import Base


class Screen(Base):
    __tablename__ = "screen"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    pairing_code = Column(String(6), nullable=False, unique=True)
    status = Column(String, default="pending")
    current_playlist_id = Column(String(36), nullable=True)
    last_heartbeat = Column(DateTime, nullable=True)
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
