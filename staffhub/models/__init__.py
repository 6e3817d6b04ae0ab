from staffhub.models.enums import UserRole, ConversationType, MessageStatus, PresenceStatus
from staffhub.models.user import User
from staffhub.models.team import Team
from staffhub.models.team_membership import TeamMembership
from staffhub.models.conversation import Conversation, make_dm_key
from staffhub.models.conversation_member import ConversationMember
from staffhub.models.message import Message
from staffhub.models.notification import Notification
