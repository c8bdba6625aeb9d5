"""Heuristic spam scoring for contact form submissions."""

from typing import NamedTuple

SUSPICIOUS_WORDS = ("viagra", "casino", "loan", "credit", "free money", "click here")
SUSPICIOUS_EMAIL_HOSTS = ("@temp", "@test")
CAPS_RATIO_LIMIT = 0.7
MIN_MESSAGE_LENGTH = 10
SPAM_THRESHOLD = 5


class SpamCheck(NamedTuple):
    is_spam: bool
    spam_score: int


def spam_score(email: str, message: str) -> int:
    score = 0
    lowered = message.lower()
    for word in SUSPICIOUS_WORDS:
        if word in lowered:
            score += 2

    if message:
        caps = sum(1 for ch in message if "A" <= ch <= "Z")
        if caps / len(message) > CAPS_RATIO_LIMIT:
            score += 3

    if any(host in email for host in SUSPICIOUS_EMAIL_HOSTS):
        score += 5

    if len(message) < MIN_MESSAGE_LENGTH:
        score += 2
    return score


def detect_spam(email: str, message: str) -> SpamCheck:
    score = spam_score(email, message)
    return SpamCheck(is_spam=score >= SPAM_THRESHOLD, spam_score=score)
