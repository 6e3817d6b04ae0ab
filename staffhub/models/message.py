from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, BigInteger, Enum, func
from sqlalchemy.orm import relationship

from staffhub.core.database import Base
from staffhub.models.enums import MessageStatus


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    text = Column(Text, nullable=False, default="")

    # Reference produced by the upload service; the bytes never live here
    file_url = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_type = Column(String, nullable=True)  # MIME type
    file_size = Column(BigInteger, nullable=True)  # Size in bytes

    status = Column(
        Enum(MessageStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=MessageStatus.SENT,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", back_populates="sent_messages")

    @property
    def attachment(self):
        if not self.file_url:
            return None
        return {
            "file_url": self.file_url,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
        }
