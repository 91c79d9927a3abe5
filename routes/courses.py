import re

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db
from models.comment import Comment
from models.review import Review
from security.rate_limit import comment_limiter, review_limiter, user_rate_limit
from utils.audit import log_event

courses_bp = Blueprint("courses", __name__, url_prefix="/courses")

URL_RE = re.compile(r"(https?://|www\.)[\w\-]+(\.[\w\-]+)+\S*", re.IGNORECASE)


def contains_url(content: str) -> bool:
    return URL_RE.search(content or "") is not None


def _comment_payload(c: Comment) -> dict:
    return {
        "id": c.id,
        "course_slug": c.course_slug,
        "user": {"id": c.user.id, "username": c.user.username} if c.user else None,
        "content": c.content,
        "created_at": c.created_at.isoformat(),
    }


# ---------- comments ----------

@courses_bp.get("/<course_slug>/comments")
def list_comments(course_slug: str):
    rows = (
        Comment.query
        .filter_by(course_slug=course_slug)
        .order_by(Comment.created_at.desc())
        .limit(200)
        .all()
    )
    return jsonify([_comment_payload(c) for c in rows]), 200


@courses_bp.post("/<course_slug>/comments")
@user_rate_limit(comment_limiter)
def add_comment(course_slug: str):
    data = request.get_json(silent=True) or {}
    content = (data.get("content") or "").strip()

    if not content:
        return jsonify(error="content is required"), 400
    if contains_url(content):
        return jsonify(error="Comments cannot contain URLs."), 400

    per_course = current_app.config.get("MAX_COMMENTS_PER_COURSE", 5)
    existing = Comment.query.filter_by(course_slug=course_slug, user_id=g.user.id).count()
    if existing >= per_course:
        return jsonify(error=f"You can only add up to {per_course} comments per course."), 400

    comment = Comment(course_slug=course_slug, user_id=g.user.id, content=content)
    db.session.add(comment)
    db.session.commit()

    log_event("COMMENT_CREATE", user_id=g.user.id, entity="comment", entity_id=comment.id)
    return jsonify(comment=_comment_payload(comment), rate_limit=g.rate_limit), 201


# ---------- reviews ----------

@courses_bp.get("/<course_slug>/reviews")
def list_reviews(course_slug: str):
    rows = (
        Review.query
        .filter_by(course_slug=course_slug)
        .order_by(Review.created_at.desc())
        .limit(200)
        .all()
    )
    average = (
        db.session.query(func.avg(Review.rating))
        .filter(Review.course_slug == course_slug)
        .scalar()
    )
    return jsonify(
        average_rating=round(float(average), 2) if average is not None else None,
        count=len(rows),
        reviews=[
            {
                "id": r.id,
                "user": {"id": r.user.id, "username": r.user.username} if r.user else None,
                "rating": r.rating,
                "text": r.text,
                "created_at": r.created_at.isoformat(),
            }
            for r in rows
        ],
    ), 200


@courses_bp.post("/<course_slug>/reviews")
@user_rate_limit(review_limiter)
def add_review(course_slug: str):
    data = request.get_json(silent=True) or {}
    rating = data.get("rating")
    text = (data.get("text") or "").strip() or None

    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        return jsonify(error="rating must be an integer between 1 and 5"), 400
    if text and contains_url(text):
        return jsonify(error="Reviews cannot contain URLs."), 400

    review = Review(course_slug=course_slug, user_id=g.user.id, rating=rating, text=text)
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="You have already reviewed this course"), 409

    log_event("REVIEW_CREATE", user_id=g.user.id, entity="review", entity_id=review.id)
    return jsonify(id=review.id, rating=review.rating, rate_limit=g.rate_limit), 201
