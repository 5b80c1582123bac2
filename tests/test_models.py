import pytest
from pydantic import ValidationError

from newsletter_ai.models import (
    GenerateNewsletterRequest,
    InvalidRequest,
    NewsletterStatus,
    check_transition,
)


@pytest.mark.parametrize(
    "current, target",
    [
        (NewsletterStatus.NOT_SENT, NewsletterStatus.PENDING),
        (NewsletterStatus.PENDING, NewsletterStatus.APPROVED),
        (NewsletterStatus.PENDING, NewsletterStatus.DECLINED),
        (NewsletterStatus.DECLINED, NewsletterStatus.PENDING),
        (NewsletterStatus.APPROVED, NewsletterStatus.SENT),
        (NewsletterStatus.SENT, NewsletterStatus.SENT),
    ],
)
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [
        (NewsletterStatus.NOT_SENT, NewsletterStatus.SENT),
        (NewsletterStatus.SENT, NewsletterStatus.NOT_SENT),
        (NewsletterStatus.SENT, NewsletterStatus.PENDING),
        (NewsletterStatus.PENDING, NewsletterStatus.SENT),
        (NewsletterStatus.DECLINED, NewsletterStatus.APPROVED),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidRequest, match="Cannot change newsletter status"):
        check_transition(current, target)


def test_generate_request_requires_articles():
    with pytest.raises(ValidationError):
        GenerateNewsletterRequest(articles=[], title="T", category="Java")
