import logging
import math
from collections import Counter
from typing import Any, Dict, List, Optional

import bleach
from fastapi import HTTPException, UploadFile

from models.post import PostCreate, SortOrder
from models.user import User
from services.firestore import FirestoreDB, utc_now
from services.s3 import S3Service
from utils.errors import Forbidden, NotFound, Unauthorized, ValidationError, store_errors
from utils.tags import normalize_tags

logger = logging.getLogger(__name__)

# images uploaded through this service are stored under this S3 prefix
UPLOADED_IMAGE_PREFIX = "posts/"


def filter_posts(posts: List[Dict[str, Any]], search: Optional[str] = None) -> List[Dict[str, Any]]:
    """Keep posts whose title or content contains the search text, ignoring case"""
    if not search:
        return posts

    needle = search.strip().lower()
    if not needle:
        return posts
    return [
        post for post in posts
        if needle in (post.get("title") or "").lower() or needle in (post.get("content") or "").lower()
    ]


def sort_posts(posts: List[Dict[str, Any]], sort: SortOrder) -> List[Dict[str, Any]]:
    """
    Order posts by recency or popularity

    Popularity ties keep recency order since the sort is stable.
    """
    by_recency = sorted(posts, key=lambda post: post.get("createdAt") or "", reverse=True)
    if sort == SortOrder.POPULAR:
        return sorted(by_recency, key=lambda post: post.get("likeCount", 0), reverse=True)
    return by_recency


class PostService:
    """
    Post, comment, like and user operations with ownership checks

    Store handles are passed in once at startup and never swapped afterwards.
    """

    def __init__(self, db: FirestoreDB, s3: S3Service):
        self.db = db
        self.s3 = s3

    def _present(self, post: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        post = dict(post)
        image = post.get("image") or ""
        if image.startswith(UPLOADED_IMAGE_PREFIX):
            post["imageUrl"] = self.s3.get_presigned_url(image)
        if user_id is not None:
            post["liked"] = user_id in (post.get("likes") or [])
        return post

    def _get_owned_post(self, post_id: str, user: User, action: str) -> Dict[str, Any]:
        """Existence is checked before ownership so unknown ids are 404 for everyone"""
        with store_errors(f"Failed to {action} post"):
            post = self.db.get_post(post_id)
        if not post:
            raise NotFound("Post not found")

        author_id = (post.get("author") or {}).get("userId")
        if author_id != user.user_id:
            logger.warning("User %s tried to %s post %s owned by %s", user.user_id, action, post_id, author_id)
            raise Forbidden(f"You cannot {action} this post")
        return post

    def create_post(self, payload: PostCreate, user: User) -> str:
        title = payload.title.strip()
        content = payload.content.strip()
        if not title or not content:
            raise ValidationError("Title and content are required")

        with store_errors("Failed to create post"):
            post_id = self.db.create_post(
                title=title,
                content=content,
                tags=normalize_tags(payload.tags),
                image=payload.image or "",
                author=user,
            )
        logger.info("User %s created post %s", user.user_id, post_id)
        return post_id

    def list_posts(
            self,
            search: Optional[str] = None,
            tag: Optional[str] = None,
            sort: SortOrder = SortOrder.RECENCY,
            page: int = 1,
            limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Filter, sort and paginate posts

        Returns:
            The requested page along with the total number of matches
        """
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        if limit < 1:
            raise ValidationError("Limit must be 1 or greater")

        tag = tag.strip().lower() if tag else None
        with store_errors("Failed to fetch posts"):
            posts = self.db.list_posts(tag=tag or None)

        matches = sort_posts(filter_posts(posts, search), sort)
        start = (page - 1) * limit
        return {
            "total": len(matches),
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(len(matches) / limit),
            "posts": [self._present(post) for post in matches[start:start + limit]],
        }

    def list_user_posts(self, user: User) -> List[Dict[str, Any]]:
        with store_errors("Failed to fetch your posts"):
            posts = self.db.list_posts(author_id=user.user_id)
        return [self._present(post, user.user_id) for post in sort_posts(posts, SortOrder.RECENCY)]

    def get_post(self, post_id: str, user: User) -> Dict[str, Any]:
        with store_errors("Failed to fetch post"):
            post = self.db.get_post(post_id)
        if not post:
            raise NotFound("Post not found")
        return self._present(post, user.user_id)

    async def update_post(
            self,
            post_id: str,
            user: User,
            title: Optional[str] = None,
            content: Optional[str] = None,
            tags: Optional[str] = None,
            image: Optional[str] = None,
            image_file: Optional[UploadFile] = None,
    ):
        """
        Edit a post owned by the caller

        Title and content are required. Tags and image are kept as they are
        unless supplied; supplied tags replace the existing ones entirely, so an
        empty value clears them. An uploaded image is removed again if the post
        write fails.
        """
        self._get_owned_post(post_id, user, "edit")

        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            raise ValidationError("Title and content are required")

        fields = {"title": title, "content": content, "updatedAt": utc_now()}
        if tags is not None:
            fields["tags"] = normalize_tags(tags)

        uploaded_key = None
        if image_file is not None and image_file.filename:
            uploaded_key = await self.s3.upload_image(image_file, user.user_id)
            fields["image"] = uploaded_key
        elif image is not None:
            fields["image"] = image.strip()

        try:
            with store_errors("Failed to update post"):
                self.db.update_post(post_id, fields)
        except HTTPException:
            if uploaded_key:
                # nothing references the new image if the post write failed
                self.s3.delete_file(uploaded_key)
            raise
        logger.info("User %s updated post %s (%s)", user.user_id, post_id, ", ".join(sorted(fields)))

    def delete_post(self, post_id: str, user: User):
        self._get_owned_post(post_id, user, "delete")

        with store_errors("Failed to delete post"):
            removed = self.db.delete_post(post_id)
        logger.info("User %s deleted post %s and %d comment(s)", user.user_id, post_id, removed)

    def toggle_like(self, post_id: str, user: Optional[User]) -> Dict[str, Any]:
        if user is None or not user.user_id:
            raise Unauthorized("Unauthorized - No token")

        with store_errors("Failed to update like"):
            result = self.db.toggle_like(post_id, user.user_id)
        if result is None:
            raise NotFound("Post not found")

        liked, like_count = result
        return {"liked": liked, "likeCount": like_count}

    def add_comment(self, post_id: str, text: str, user: User) -> str:
        text = bleach.clean(text or "", tags=set(), strip=True).strip()
        if not text:
            raise ValidationError("Comment text is required")

        with store_errors("Failed to add comment"):
            if not self.db.get_post(post_id):
                raise NotFound("Post not found")
            return self.db.add_comment(post_id, text, user)

    def get_comments(self, post_id: str) -> List[Dict[str, Any]]:
        with store_errors("Failed to fetch comments"):
            return self.db.get_comments(post_id)

    def sync_user(self, user: User) -> Dict[str, Any]:
        with store_errors("Failed to sync user"):
            record, created = self.db.sync_user(user)
        if created:
            logger.info("Provisioned user record for %s", user.user_id)
        return {"created": created, "user": record}

    def dashboard_overview(self) -> Dict[str, Any]:
        """Totals and per-tag post counts, computed fresh on every call"""
        with store_errors("Failed to load dashboard"):
            posts = self.db.list_posts()
            total_comments = self.db.count_comments()

        tag_counts = Counter(tag for post in posts for tag in set(post.get("tags") or []))
        tags = sorted(tag_counts.items(), key=lambda item: (-item[1], item[0]))

        return {
            "totalPosts": len(posts),
            "totalLikes": sum(post.get("likeCount", 0) for post in posts),
            "totalComments": total_comments,
            "tags": [{"tag": tag, "count": count} for tag, count in tags],
        }
