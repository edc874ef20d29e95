"""
Database models for PhotoTune session storage.

Defines the SQLAlchemy ORM models for enhancement sessions and the
feedback users leave on them.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, declarative_base

from ..processing.models import FeedbackRecord, SessionRecord

Base = declarative_base()

# JSONB where the database has it
JsonColumn = JSON().with_variant(JSONB(), 'postgresql')


class EnhancementSession(Base):
    """One recorded enhancement run."""
    __tablename__ = 'sessions'

    # Autoincrement id doubles as insertion order for "most recent" queries
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True)
    user_id = Column(String(200), nullable=False)
    image_type = Column(String(50), nullable=False, default='other')

    # Applied configuration as produced by EnhancementConfig.to_dict()
    config = Column(JsonColumn, nullable=False, default=dict)

    rating = Column(Integer)  # 1-5 stars
    quality_improvement = Column(Float)
    processing_time = Column(Float, default=0.0)
    created_at = Column(String(32))  # ISO timestamp

    feedback = relationship("SessionFeedback", back_populates="session",
                            order_by="SessionFeedback.id", cascade="all, delete-orphan",
                            lazy="selectin")

    __table_args__ = (
        Index('idx_session_user_recent', 'user_id', 'id'),
    )

    def update_from(self, record: SessionRecord) -> None:
        self.user_id = record.user_id
        self.image_type = record.image_type
        self.config = record.config.to_dict()
        self.rating = record.rating
        self.quality_improvement = record.quality_improvement
        self.processing_time = record.processing_time
        self.created_at = record.created_at

    def to_record(self) -> SessionRecord:
        record = SessionRecord.from_dict({
            'session_id': self.session_id,
            'user_id': self.user_id,
            'image_type': self.image_type,
            'config': self.config,
            'rating': self.rating,
            'quality_improvement': self.quality_improvement,
            'processing_time': self.processing_time,
            'created_at': self.created_at,
        })
        return record.with_feedback(item.to_record() for item in self.feedback)


class SessionFeedback(Base):
    """User feedback on a recorded session."""
    __tablename__ = 'feedback'

    id = Column(Integer, primary_key=True, autoincrement=True)
    feedback_id = Column(String(64), nullable=False, unique=True)
    session_id = Column(String(64), ForeignKey('sessions.session_id'), nullable=False, index=True)
    user_id = Column(String(200), nullable=False, index=True)
    feedback_type = Column(String(50), nullable=False)
    rating = Column(Integer)
    specific_feedback = Column(JsonColumn, default=dict)
    created_at = Column(String(32))

    session = relationship("EnhancementSession", back_populates="feedback")

    @classmethod
    def from_record(cls, record: FeedbackRecord, feedback_id: str) -> 'SessionFeedback':
        data = record.to_dict()
        return cls(
            feedback_id=feedback_id,
            session_id=data['session_id'],
            user_id=data['user_id'],
            feedback_type=data['feedback_type'],
            rating=data['rating'],
            specific_feedback=data['specific_feedback'],
            created_at=data['created_at'],
        )

    def to_record(self) -> FeedbackRecord:
        return FeedbackRecord.from_dict({
            'feedback_id': self.feedback_id,
            'session_id': self.session_id,
            'user_id': self.user_id,
            'feedback_type': self.feedback_type,
            'rating': self.rating,
            'specific_feedback': self.specific_feedback,
            'created_at': self.created_at,
        })
