"""
Provider ratings.

The customer rates a completed job once. The rating row and the provider's
running averages are written in the same transaction, holding the job and
provider row locks, so concurrent ratings never lose an update.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app import db
from app import permissions
from app.errors import AlreadyRated, JobNotRatable, NotFound, PermissionDenied, ValidationError
from app.job_store import get_job
from app.lifecycle import lock_job
from app.models import JobEvent, Rating, User
from app.models.base import utcnow
from app.models.rating import RATING_DIMENSIONS
from app.models.user import get_user
from app.utils.transactions import atomic
from app.utils.validators import parse_positive_number

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


@dataclass
class RatingResult:
    rating: Rating
    provider: User
    warnings: List[dict] = field(default_factory=list)


def _parse_scores(scores):
    """Whole stars 1-5 per dimension; unscored dimensions take the overall score."""
    scores = scores or {}
    parsed = {"overall": parse_positive_number(scores.get("overall"), "overall", integer=True)}
    for dimension in RATING_DIMENSIONS[1:]:
        value = scores.get(dimension)
        parsed[dimension] = (
            parsed["overall"] if value in (None, "")
            else parse_positive_number(value, dimension, integer=True)
        )
    for dimension, value in parsed.items():
        if value > 5:
            raise ValidationError("{} must be between 1 and 5".format(dimension), field=dimension)
    return parsed


def _running_average(previous, count, score):
    return ((previous or 0.0) * count + score) / (count + 1)


def rate_job(job_id, actor, scores, comment=None):
    """
    Record the owner's rating of a completed job

    Raises:
        JobNotRatable: the job is not completed or has no provider
        AlreadyRated: the job already carries a rating
    """
    from app.notifications import notify

    scores = _parse_scores(scores)
    comment = (str(comment).strip() or None) if comment is not None else None
    if comment and len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError("comment is too long", field="comment")

    def work():
        job = lock_job(job_id)
        if not permissions.can_view_job(actor, job):
            raise NotFound("Job not found")
        if not permissions.is_owner(actor, job):
            raise PermissionDenied("Only the customer can rate this job")
        if job.status != "completed" or not job.provider_id:
            raise JobNotRatable(status=job.status)
        if Rating.query.filter_by(job_id=job.id).first() is not None:
            raise AlreadyRated()

        provider = db.session.execute(
            select(User).where(User.id == job.provider_id).with_for_update()
        ).scalar_one_or_none()
        if provider is None:
            raise JobNotRatable(status=job.status)

        now = utcnow()
        count = provider.rating_count or 0
        for dimension in RATING_DIMENSIONS:
            column = "rating_{}_avg".format(dimension)
            setattr(provider, column, _running_average(getattr(provider, column), count, scores[dimension]))
        provider.rating_count = count + 1
        provider.touch(now)

        rating = Rating(
            job_id=job.id,
            provider_uid=provider.id,
            rated_by_uid=actor.id,
            comment=comment,
            created_at=now,
            **scores
        )
        db.session.add(rating)
        JobEvent.record(
            job.id, "rated", actor_uid=actor.id,
            new_values={"overall": scores["overall"], "provider_id": provider.id},
            created_at=now,
        )
        return RatingResult(rating=rating, provider=provider)

    try:
        result = atomic(work)
    except IntegrityError:
        # A concurrent rating of the same job won the unique job_id slot
        raise AlreadyRated()

    logger.info("Job %s rated %d by %s; provider %s now %.2f over %d",
                job_id, scores["overall"], actor.id, result.provider.id,
                result.provider.rating_overall_avg, result.provider.rating_count)
    _, warnings = notify(
        result.provider.id,
        "job_rated",
        "New rating received",
        body="You received a {}-star rating.".format(scores["overall"]),
        job_id=job_id,
    )
    result.warnings.extend(warnings)
    return result


def get_job_rating(job_id, actor):
    job = get_job(job_id, actor)
    return Rating.query.filter_by(job_id=job.id).first()


def list_provider_ratings(provider_uid, limit=50):
    """Newest first, with the provider's aggregates."""
    provider = get_user(provider_uid)
    if provider is None or not provider.is_provider:
        raise NotFound("Provider not found")
    ratings = (
        Rating.query.filter_by(provider_uid=provider_uid)
        .order_by(Rating.created_at.desc())
        .limit(limit)
        .all()
    )
    return provider, ratings
