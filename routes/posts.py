from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile

from config import get_settings
from dependencies import CurrentUser, Posts
from models.post import CommentRequest, PostCreate, SortOrder

router = APIRouter()

settings = get_settings()


@router.post("")
async def create_post(post_data: PostCreate, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Create a new post authored by the caller"""
    post_id = posts.create_post(post_data, current_user)
    return {"success": True, "postId": post_id}


@router.get("")
async def get_posts(
        posts: Posts,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        sort: SortOrder = SortOrder.RECENCY,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> Dict[str, Any]:
    """
    List posts with optional text search, tag filter, sort order and pagination

    Args:
        search: Case-insensitive text matched against title and content
        tag: Only return posts carrying this tag
        sort: "recency" (newest first) or "popular" (most liked first)
        page: 1-indexed page number
        limit: Page size
    """
    result = posts.list_posts(search=search, tag=tag, sort=sort, page=page, limit=limit)
    return {"success": True, **result}


@router.get("/my-posts")
async def get_my_posts(posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Get posts authored by the caller, newest first"""
    return {"success": True, "posts": posts.list_user_posts(current_user)}


@router.get("/dashboard/overview")
async def dashboard_overview(posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Aggregate post, like, comment and tag statistics"""
    return {"success": True, **posts.dashboard_overview()}


@router.post("/user/sync")
async def sync_user(posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Create the caller's user record on first call, return it unchanged afterwards"""
    return {"success": True, **posts.sync_user(current_user)}


@router.patch("/like/{post_id}")
async def toggle_like(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Toggle like status for a post"""
    return {"success": True, **posts.toggle_like(post_id, current_user)}


@router.post("/comment/{post_id}")
async def add_comment(
        post_id: str,
        comment: CommentRequest,
        posts: Posts,
        current_user: CurrentUser
) -> Dict[str, Any]:
    """Add a comment to a post"""
    comment_id = posts.add_comment(post_id, comment.text, current_user)
    return {"success": True, "commentId": comment_id}


@router.get("/comments/{post_id}")
async def get_comments(post_id: str, posts: Posts) -> Dict[str, Any]:
    """Get comments for a post, newest first"""
    return {"success": True, "comments": posts.get_comments(post_id)}


@router.put("/{post_id}")
async def edit_post(
        post_id: str,
        request: Request,
        posts: Posts,
        current_user: CurrentUser,
        title: Optional[str] = Form(None),
        content: Optional[str] = Form(None),
        image_file: Annotated[Optional[UploadFile], File(alias="imageFile", validation_alias="imageFile")] = None,
) -> Dict[str, Any]:
    """
    Edit a post (author only)

    Form fields:
        tags: Comma-separated tags; omit to keep the current tags, send empty to clear them
        image: New image reference; omit to keep the current image, send empty to clear it
        imageFile: Uploaded image, takes precedence over image
    """
    # empty form values arrive as None on declared params, so read presence from the raw form
    form = await request.form()
    tags = form.get("tags") if isinstance(form.get("tags"), str) else None
    image = form.get("image") if isinstance(form.get("image"), str) else None

    await posts.update_post(
        post_id,
        current_user,
        title=title,
        content=content,
        tags=tags,
        image=image,
        image_file=image_file,
    )
    return {"success": True, "message": "Post updated successfully"}


@router.delete("/{post_id}")
async def delete_post(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Delete a post (author only) along with its comments"""
    posts.delete_post(post_id, current_user)
    return {"success": True, "message": "Post deleted successfully"}


# keep last so the fixed paths above win
@router.get("/{post_id}")
async def get_post(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Get a single post along with whether the caller has liked it"""
    return {"success": True, "post": posts.get_post(post_id, current_user)}
