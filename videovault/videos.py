"""Per-user YouTube link library, gated on an active subscription."""
import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import get_db
from .deps import ensure_active_subscription, get_current_user, require_active_subscription
from .errors import ConflictDuplicate, NotFound, ValidationFailed
from .models import User, Video
from .schemas import VideoOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])

YOUTUBE_PATTERNS = [
    re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+$"),
    re.compile(r"^https?://(www\.)?youtube\.com/watch\?v=[\w-]+"),
    re.compile(r"^https?://(www\.)?youtu\.be/[\w-]+"),
]

class VideoIn(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None

def is_youtube_url(url: str) -> bool:
    return any(p.match(url) for p in YOUTUBE_PATTERNS)

# policy checks, called before the operation they guard

def ensure_can_add_video(user: User):
    ensure_active_subscription(user)

def ensure_owns_video(user: User, video: Optional[Video]) -> Video:
    # someone else's row looks the same as a missing one
    if video is None or video.user_id != user.id:
        raise NotFound("Video not found")
    return video

@router.get("", response_model=List[VideoOut])
def list_videos(db: Session = Depends(get_db), user: User = Depends(require_active_subscription)):
    return (
        db.query(Video)
        .filter(Video.user_id == user.id)
        .order_by(Video.created_at.desc(), Video.id.desc())
        .all()
    )

@router.post("", response_model=VideoOut, status_code=201)
def add_video(payload: VideoIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ensure_can_add_video(user)
    url = (payload.url or "").strip()
    if not url:
        raise ValidationFailed("YouTube URL is required")
    if not is_youtube_url(url):
        raise ValidationFailed("Invalid YouTube URL")
    # uniqueness is global: one user adding a URL blocks it for everyone
    if db.query(Video.id).filter(Video.youtube_url == url).first():
        raise ConflictDuplicate("Video already exists")
    video = Video(user_id=user.id, youtube_url=url, title=(payload.title or "").strip() or None)
    db.add(video)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictDuplicate("Video already exists")
    db.refresh(video)
    logger.info("Video %s added by user_id=%s", video.id, user.id)
    return video

@router.delete("")
def delete_video(id: Optional[str] = Query(None), db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not id:
        raise ValidationFailed("Video ID is required")
    try:
        video_id = int(id)
    except ValueError:
        raise ValidationFailed("Invalid video ID")
    video = ensure_owns_video(user, db.get(Video, video_id))
    db.delete(video)
    db.commit()
    logger.info("Video %s deleted by user_id=%s", video_id, user.id)
    return {"success": True}
