from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship

from staffhub.core.database import Base
from staffhub.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    employee_code = Column(String, unique=True, nullable=True)
    role = Column(Enum(UserRole, values_callable=lambda x: [e.value for e in x]), nullable=False, default=UserRole.EMPLOYEE, index=True)
    reporting_to_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    presence_status = Column(String, default="offline", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    reporting_to = relationship("User", remote_side=[id])
    team_memberships = relationship("TeamMembership", back_populates="user", cascade="all, delete-orphan")
    led_teams = relationship("Team", back_populates="leader")
    conversation_memberships = relationship("ConversationMember", back_populates="user")
    sent_messages = relationship("Message", back_populates="sender")
    notifications = relationship("Notification", foreign_keys="Notification.user_id", back_populates="user")
