from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """Identity claims taken from a verified Firebase ID token"""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None

    def snapshot(self) -> dict:
        """Author snapshot embedded in posts and comments"""
        return {
            "userId": self.user_id,
            "email": self.email,
            "name": self.name,
            "avatar": self.avatar,
        }


class UserRecord(BaseModel):
    id: str
    externalId: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    role: Role = Role.USER
    createdAt: str
