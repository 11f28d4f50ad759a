import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple

import firebase_admin
from firebase_admin import firestore as fs
from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from models.post import Post
from models.user import User, UserRecord
from utils.likes import toggle_membership

logger = logging.getLogger(__name__)

# Firestore rejects batches with more than 500 writes
BATCH_LIMIT = 500


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FirestoreDB:
    def __init__(self, app: firebase_admin.App):
        self.db = fs.client(app)

    def collection(self, name: str):
        return self.db.collection(name)

    # --- posts ---

    def create_post(self, title: str, content: str, tags: List[str], image: str, author: User) -> str:
        """Create a new post with zeroed counters"""
        new_post_ref = self.collection("posts").document()
        post = Post(
            title=title,
            content=content,
            tags=tags,
            image=image or "",
            author=author.snapshot(),
            createdAt=utc_now(),
        )
        new_post_ref.set(post.model_dump(exclude={"id"}, exclude_none=True))
        return new_post_ref.id

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        """Get a post by ID"""
        snapshot = self.collection("posts").document(post_id).get()
        if not snapshot.exists:
            return None
        post_data = snapshot.to_dict()
        post_data["id"] = snapshot.id
        return post_data

    def list_posts(self, tag: Optional[str] = None, author_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get posts sorted by creation date descending, optionally narrowed to a
        single tag or a single author
        """
        query = self.collection("posts")
        if tag:
            query = query.where(filter=FieldFilter("tags", "array_contains", tag))
        if author_id:
            query = query.where(filter=FieldFilter("author.userId", "==", author_id))

        posts = []
        for doc in query.order_by("createdAt", direction=firestore.Query.DESCENDING).stream():
            post_data = doc.to_dict()
            post_data["id"] = doc.id
            posts.append(post_data)
        return posts

    def update_post(self, post_id: str, fields: Dict[str, Any]):
        """Apply a partial update to a post"""
        self.collection("posts").document(post_id).update(fields)

    def delete_post(self, post_id: str) -> int:
        """
        Delete a post together with every comment referencing it

        Comments go first and the post is written in the last batch, so a
        failure part way through leaves the post in place rather than
        orphaned comments behind a deleted post.

        :return: the number of comments removed
        """
        comment_refs = [
            doc.reference
            for doc in self.collection("comments").where(
                filter=FieldFilter("postId", "==", post_id)
            ).stream()
        ]

        refs = comment_refs + [self.collection("posts").document(post_id)]
        for i in range(0, len(refs), BATCH_LIMIT):
            batch = self.db.batch()
            for ref in refs[i:i + BATCH_LIMIT]:
                batch.delete(ref)
            batch.commit()

        return len(comment_refs)

    def toggle_like(self, post_id: str, user_id: str) -> Optional[Tuple[bool, int]]:
        """
        Flip a user's like on a post inside a transaction

        :return: (liked, likeCount) after the toggle, or None if the post does not exist
        """
        post_ref = self.collection("posts").document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def toggle_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            post_data = snapshot.to_dict()
            likes, like_count, liked = toggle_membership(post_data.get("likes", []), user_id)

            transaction.update(post_ref, {"likes": likes, "likeCount": like_count})
            return liked, like_count

        return toggle_in_transaction(transaction, post_ref)

    # --- comments ---

    def add_comment(self, post_id: str, text: str, author: User) -> str:
        """Add a comment and bump the parent post's commentCount in one batch"""
        comment_ref = self.collection("comments").document()
        comment_data = {
            "postId": post_id,
            "author": author.snapshot(),
            "text": text,
            "createdAt": utc_now(),
        }

        batch = self.db.batch()
        batch.set(comment_ref, comment_data)
        batch.update(
            self.collection("posts").document(post_id),
            {"commentCount": firestore.Increment(1)}
        )
        batch.commit()
        return comment_ref.id

    def get_comments(self, post_id: str) -> List[Dict[str, Any]]:
        """Get comments for a post, newest first"""
        comments_ref = self.collection("comments").where(
            filter=FieldFilter("postId", "==", post_id)
        ).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).stream()

        comments = []
        for doc in comments_ref:
            c_data = doc.to_dict()
            c_data["id"] = doc.id
            comments.append(c_data)
        return comments

    def count_comments(self) -> int:
        """Count every comment using a server-side aggregation"""
        result = self.collection("comments").count().get()
        return int(result[0][0].value)

    # --- users ---

    def sync_user(self, user: User) -> Tuple[Dict[str, Any], bool]:
        """
        Create the user record for an external identity unless it exists

        The document id is the external identity id and create() fails if the
        document is already there, so two concurrent first syncs still produce
        a single record.

        :return: (user record, whether it was created by this call)
        """
        user_ref = self.collection("users").document(user.user_id)
        snapshot = user_ref.get()
        if snapshot.exists:
            return {"id": snapshot.id, **snapshot.to_dict()}, False

        record = UserRecord(
            id=user.user_id,
            externalId=user.user_id,
            email=user.email,
            name=user.name,
            avatar=user.avatar,
            createdAt=utc_now(),
        )
        data = record.model_dump(mode="json", exclude={"id"})
        try:
            user_ref.create(data)
        except AlreadyExists:
            logger.info("User %s was created concurrently, returning existing record", user.user_id)
            snapshot = user_ref.get()
            return {"id": snapshot.id, **snapshot.to_dict()}, False

        return {"id": user_ref.id, **data}, True
