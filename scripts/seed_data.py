"""
Create a small demo organisation so the chat rules can be tried by hand.

Safe to run more than once: existing users and teams are left as they are.
Prints a bearer token per user at the end.
"""
import logging

from staffhub import models  # noqa: F401
from staffhub.core.database import Base, SessionLocal, engine
from staffhub.core.security import create_access_token
from staffhub.models.enums import UserRole
from staffhub.schemas import team as schemas_team, user as schemas_user
from staffhub.services import team_service, user_service

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin@example.com", "Ada Admin", UserRole.ADMIN, "EMP-001"),
    ("hr@example.com", "Hana HR", UserRole.HR, "EMP-002"),
    ("mia@example.com", "Mia Manager", UserRole.MANAGER, "EMP-010"),
    ("max@example.com", "Max Manager", UserRole.MANAGER, "EMP-011"),
    ("eli@example.com", "Eli Employee", UserRole.EMPLOYEE, "EMP-100"),
    ("eva@example.com", "Eva Employee", UserRole.EMPLOYEE, "EMP-101"),
    ("finn@example.com", "Finn Employee", UserRole.EMPLOYEE, "EMP-102"),
    ("gus@example.com", "Gus Employee", UserRole.EMPLOYEE, "EMP-103"),
]

# team name -> (leader email, member emails)
DEMO_TEAMS = {
    "Platform": ("mia@example.com", ["eli@example.com", "eva@example.com"]),
    "Support": ("mia@example.com", ["finn@example.com"]),
    "Sales": ("max@example.com", ["gus@example.com"]),
}


def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        users = {}
        for email, name, role, employee_code in DEMO_USERS:
            user = user_service.get_user_by_email(db, email)
            if not user:
                logger.info(f"Creating {role.value} {email}")
                user = user_service.create_user(
                    db, schemas_user.UserCreate(email=email, name=name, role=role, employee_code=employee_code)
                )
            users[email] = user

        for team_name, (leader_email, member_emails) in DEMO_TEAMS.items():
            team = team_service.get_team_by_name(db, team_name)
            if not team:
                logger.info(f"Creating team {team_name}")
                team_service.create_team(db, schemas_team.TeamCreate(
                    name=team_name,
                    leader_id=users[leader_email].id,
                    member_ids=[users[email].id for email in member_emails],
                ))
                continue
            for email in member_emails:
                team_service.add_member_to_team(db, team.id, users[email].id)

        for email, user in users.items():
            print(f"{email:<22} {user.role.value:<9} {create_access_token({'sub': email})}")
    finally:
        db.close()


if __name__ == "__main__":
    create_seed_data()
