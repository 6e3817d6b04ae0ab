from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship

from staffhub.core.database import Base
from staffhub.models.enums import ConversationType


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    conversation_type = Column(
        Enum(ConversationType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ConversationType.DM,
    )

    # "<low_id>:<high_id>" for dm rows, NULL for team rows. The unique index
    # is what keeps a pair down to a single dm conversation.
    dm_key = Column(String, unique=True, nullable=True)
    # Unique as well: one team conversation per team. NULL for dm rows.
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), unique=True, nullable=True)

    last_message = Column(String, nullable=False, default="")
    last_message_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team", back_populates="conversation")
    members = relationship("ConversationMember", back_populates="conversation", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")

    @property
    def member_ids(self):
        return [member.user_id for member in self.members]


def make_dm_key(user_a_id: int, user_b_id: int) -> str:
    low, high = sorted((user_a_id, user_b_id))
    return f"{low}:{high}"
