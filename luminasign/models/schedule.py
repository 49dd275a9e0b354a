import uuid
from datetime import datetime
from sqlalchemy import Column, Time, ForeignKey, String, DateTime, Integer, event, func
from sqlalchemy.orm import Session
from luminasign.db import Base

class Schedule(Base):
    __tablename__ = "schedule"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    screen_id = Column(String(36), ForeignKey("screen.id"), nullable=False)
    playlist_id = Column(String(36), ForeignKey("playlist.id"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    days = Column(String, nullable=False)  # CSV: 0,1,2,3,4,5,6 (0 = Sunday)
    # Creation sequence; earlier schedules win when windows overlap.
    position = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


@event.listens_for(Session, "before_flush")
def _number_new_schedules(session, flush_context, instances):
    pending = [obj for obj in session.new if isinstance(obj, Schedule) and obj.position is None]
    if not pending:
        return
    with session.no_autoflush:
        last = session.query(func.max(Schedule.position)).scalar() or 0
    for offset, schedule in enumerate(pending, start=1):
        schedule.position = last + offset
