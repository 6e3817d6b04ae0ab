from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, func
from sqlalchemy.orm import relationship

from staffhub.core.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(String, nullable=False)  # 'message', ...
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)

    # Notifications outlive the entities that triggered them
    related_message_id = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    related_conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="SET NULL"), nullable=True)

    # Actor who triggered the notification
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", foreign_keys=[user_id], back_populates="notifications")
    actor = relationship("User", foreign_keys=[actor_id])
    related_message = relationship("Message", foreign_keys=[related_message_id], passive_deletes=True)
    related_conversation = relationship("Conversation", foreign_keys=[related_conversation_id], passive_deletes=True)
