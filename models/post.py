from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class SortOrder(str, Enum):
    RECENCY = "recency"
    POPULAR = "popular"


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    # a list or a comma-separated string
    tags: Union[List[str], str] = []
    image: Optional[str] = None


class CommentRequest(BaseModel):
    text: str = Field(..., min_length=1)


class Author(BaseModel):
    userId: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None


class Post(BaseModel):
    id: Optional[str] = None
    title: str
    content: str
    tags: List[str] = []
    image: str = ""
    author: Author
    createdAt: str
    updatedAt: Optional[str] = None
    likeCount: int = 0
    commentCount: int = 0
    likes: List[str] = []
