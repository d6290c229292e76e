from sqlmodel import Session

from buytown.models.user import User


class RoleService:
    def __init__(self, session: Session):
        self.session = session

    def has_role(self, user_id: int, role_name: str) -> bool:
        user = self.session.get(User, user_id)
        return bool(user and user.can_login and user.role == role_name)

    def role_of(self, user_id) -> str:
        if user_id is None:
            return "system"
        user = self.session.get(User, user_id)
        return user.role if user else "unknown"
