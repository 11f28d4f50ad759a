"""Pytest fixtures for the posts API tests."""

import itertools
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

import dependencies
from main import app
from models.post import Post
from models.user import User, UserRecord
from services.firestore import utc_now
from services.posts import PostService
from utils.likes import toggle_membership

TOKENS = {
    "token-alice": {"uid": "alice", "email": "alice@example.com", "name": "Alice", "picture": "https://img/alice.png"},
    "token-bob": {"uid": "bob", "email": "bob@example.com", "name": "Bob"},
    "token-carol": {"uid": "carol", "email": "carol@example.com"},
}


class InMemoryStore:
    """Dictionary-backed stand-in for FirestoreDB with the same method surface"""

    def __init__(self):
        self.posts: Dict[str, Dict[str, Any]] = {}
        self.comments: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        # monotonically increasing timestamps so ordering is deterministic
        self._clock = itertools.count(1)

    def _timestamp(self) -> str:
        return f"{utc_now()[:10]}T00:00:00.{next(self._clock):06d}+00:00"

    def create_post(self, title: str, content: str, tags: List[str], image: str, author: User) -> str:
        post_id = f"post{next(self._ids)}"
        post = Post(
            title=title,
            content=content,
            tags=tags,
            image=image or "",
            author=author.snapshot(),
            createdAt=self._timestamp(),
        )
        self.posts[post_id] = post.model_dump(exclude={"id"}, exclude_none=True)
        return post_id

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        if post_id not in self.posts:
            return None
        return {**self.posts[post_id], "id": post_id}

    def list_posts(self, tag: Optional[str] = None, author_id: Optional[str] = None) -> List[Dict[str, Any]]:
        posts = [{**data, "id": post_id} for post_id, data in self.posts.items()]
        if tag:
            posts = [post for post in posts if tag in post.get("tags", [])]
        if author_id:
            posts = [post for post in posts if post["author"]["userId"] == author_id]
        return sorted(posts, key=lambda post: post["createdAt"], reverse=True)

    def update_post(self, post_id: str, fields: Dict[str, Any]):
        self.posts[post_id].update(fields)

    def delete_post(self, post_id: str) -> int:
        doomed = [cid for cid, comment in self.comments.items() if comment["postId"] == post_id]
        for comment_id in doomed:
            del self.comments[comment_id]
        self.posts.pop(post_id, None)
        return len(doomed)

    def toggle_like(self, post_id: str, user_id: str) -> Optional[Tuple[bool, int]]:
        post = self.posts.get(post_id)
        if post is None:
            return None
        likes, like_count, liked = toggle_membership(post.get("likes", []), user_id)
        post["likes"] = likes
        post["likeCount"] = like_count
        return liked, like_count

    def add_comment(self, post_id: str, text: str, author: User) -> str:
        comment_id = f"comment{next(self._ids)}"
        self.comments[comment_id] = {
            "postId": post_id,
            "author": author.snapshot(),
            "text": text,
            "createdAt": self._timestamp(),
        }
        self.posts[post_id]["commentCount"] = self.posts[post_id].get("commentCount", 0) + 1
        return comment_id

    def get_comments(self, post_id: str) -> List[Dict[str, Any]]:
        comments = [
            {**comment, "id": comment_id}
            for comment_id, comment in self.comments.items()
            if comment["postId"] == post_id
        ]
        return sorted(comments, key=lambda comment: comment["createdAt"], reverse=True)

    def count_comments(self) -> int:
        return len(self.comments)

    def sync_user(self, user: User) -> Tuple[Dict[str, Any], bool]:
        if user.user_id in self.users:
            return {"id": user.user_id, **self.users[user.user_id]}, False
        record = UserRecord(
            id=user.user_id,
            externalId=user.user_id,
            email=user.email,
            name=user.name,
            avatar=user.avatar,
            createdAt=self._timestamp(),
        )
        self.users[user.user_id] = record.model_dump(mode="json", exclude={"id"})
        return {"id": user.user_id, **self.users[user.user_id]}, True


class FakeS3:
    def __init__(self):
        self.uploads: Dict[str, bytes] = {}

    async def upload_image(self, file, user_id: str) -> str:
        key = f"posts/{user_id}/{file.filename}"
        self.uploads[key] = await file.read()
        return key

    def get_presigned_url(self, key: str, expiration_seconds: int = 3600) -> str:
        return f"https://bucket.example/{key}?signed"

    def delete_file(self, key: str) -> bool:
        return self.uploads.pop(key, None) is not None


def fake_verify_id_token(token, check_revoked=False, clock_skew_seconds=0):
    if token not in TOKENS:
        raise ValueError("Token expired or invalid")
    return TOKENS[token]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def service(store: InMemoryStore, s3: FakeS3) -> PostService:
    return PostService(store, s3)


@pytest.fixture
def client(service: PostService, monkeypatch) -> TestClient:
    """TestClient wired to in-memory collaborators; lifespan is not run"""
    monkeypatch.setattr(dependencies, "verify_id_token", fake_verify_id_token)
    app.state.post_service = service
    return TestClient(app)


@pytest.fixture
def auth():
    """Build an Authorization header for one of the known test tokens"""
    def headers(user: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer token-{user}"}
    return headers


@pytest.fixture
def alice() -> User:
    return User(user_id="alice", email="alice@example.com", name="Alice")


@pytest.fixture
def bob() -> User:
    return User(user_id="bob", email="bob@example.com", name="Bob")
