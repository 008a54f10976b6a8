"""Ordered phrase tables that drive every text heuristic.

Each table is immutable data: an ordered tuple of (phrase, category)
pairs evaluated first to last, so position encodes priority. Tables
built with whole_words=True only match a phrase on word boundaries
("ok" never hits "book"); the others match plain substrings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from flowaudit.models.types import BlockCategory


@dataclass(frozen=True)
class PatternTable:
    entries: tuple[tuple[str, str], ...]
    whole_words: bool = False
    _compiled: tuple[tuple[re.Pattern, str, str], ...] = field(
        init=False, repr=False, compare=False,
    )

    def __post_init__(self):
        compiled = []
        for phrase, category in self.entries:
            body = re.escape(phrase.lower())
            if self.whole_words:
                body = rf"(?<!\w){body}(?!\w)"
            compiled.append((re.compile(body, re.I), phrase, category))
        object.__setattr__(self, "_compiled", tuple(compiled))

    @property
    def phrases(self) -> list[str]:
        return [phrase for phrase, _ in self.entries]

    def first_match(self, text: str) -> tuple[str, str] | None:
        """Return the highest-priority (phrase, category) found in text."""
        if not text:
            return None
        for pattern, phrase, category in self._compiled:
            if pattern.search(text):
                return phrase, category
        return None

    def matches(self, text: str) -> bool:
        return self.first_match(text) is not None

    def matches_phrase(self, phrase: str, text: str) -> bool:
        for pattern, p, _ in self._compiled:
            if p == phrase:
                return bool(text) and bool(pattern.search(text))
        return False

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


# Controls that advance a flow, best first.
NEXT_PATTERNS = PatternTable(
    entries=(
        ("get started", "primary"),
        ("start", "primary"),
        ("begin", "primary"),
        ("let's go", "primary"),
        ("take assessment", "primary"),
        ("start assessment", "primary"),
        ("begin assessment", "primary"),
        ("take quiz", "primary"),
        ("start quiz", "primary"),
        ("next", "navigation"),
        ("continue", "navigation"),
        ("proceed", "navigation"),
        ("go", "navigation"),
        ("forward", "navigation"),
        ("submit", "submission"),
        ("send", "submission"),
        ("confirm", "submission"),
        ("done", "submission"),
        ("finish", "submission"),
        ("complete", "submission"),
        ("select", "selection"),
        ("choose", "selection"),
        ("pick", "selection"),
        ("tap here", "selection"),
        ("click here", "selection"),
        ("i agree", "agreement"),
        ("accept", "agreement"),
        ("okay", "agreement"),
        ("ok", "agreement"),
        ("yes", "agreement"),
        ("got it", "agreement"),
    ),
    whole_words=True,
)

# Exit gates: reaching one ends the evaluable part of the flow.
STOP_PATTERNS = PatternTable(
    entries=(
        ("sign up", "account"),
        ("create account", "account"),
        ("log in", "account"),
        ("login", "account"),
        ("sign in", "account"),
        ("checkout", "commerce"),
        ("payment", "commerce"),
        ("pay now", "commerce"),
        ("purchase", "commerce"),
        ("buy now", "commerce"),
        ("add to cart", "commerce"),
        ("schedule", "contact"),
        ("book appointment", "contact"),
        ("call us", "contact"),
        ("contact", "contact"),
    ),
    whole_words=True,
)

# Flow controls that must never be mistaken for an answer choice.
NAVIGATION_PATTERNS = PatternTable(
    entries=(
        ("next", "forward"),
        ("continue", "forward"),
        ("proceed", "forward"),
        ("get started", "forward"),
        ("start", "forward"),
        ("begin", "forward"),
        ("let's go", "forward"),
        ("take assessment", "forward"),
        ("take quiz", "forward"),
        ("go back", "backward"),
        ("go", "forward"),
        ("forward", "forward"),
        ("submit", "forward"),
        ("send", "forward"),
        ("confirm", "forward"),
        ("done", "forward"),
        ("finish", "forward"),
        ("complete", "forward"),
        ("skip", "forward"),
        ("back", "backward"),
        ("previous", "backward"),
    ),
    whole_words=True,
)

# Body phrases of a confirmation / thank-you page.
TERMINAL_PATTERNS = PatternTable(
    entries=(
        ("thank you", "confirmation"),
        ("thanks for", "confirmation"),
        ("we'll be in touch", "confirmation"),
        ("we will contact", "confirmation"),
        ("check your email", "confirmation"),
        ("confirmation", "confirmation"),
        ("your results", "results"),
        ("assessment complete", "results"),
    ),
)

# Human-intervention walls, in priority order.
BLOCKER_PATTERNS = PatternTable(
    entries=(
        ("two-factor", BlockCategory.TWO_FACTOR.value),
        ("two factor", BlockCategory.TWO_FACTOR.value),
        ("2-step verification", BlockCategory.TWO_FACTOR.value),
        ("two-step verification", BlockCategory.TWO_FACTOR.value),
        ("authenticator app", BlockCategory.TWO_FACTOR.value),
        ("6-digit code", BlockCategory.TWO_FACTOR.value),
        ("six-digit code", BlockCategory.TWO_FACTOR.value),
        ("one-time code", BlockCategory.TWO_FACTOR.value),
        ("one-time passcode", BlockCategory.TWO_FACTOR.value),
        ("one-time password", BlockCategory.TWO_FACTOR.value),
        ("security code", BlockCategory.TWO_FACTOR.value),
        ("verify your email", BlockCategory.EMAIL_VERIFICATION.value),
        ("confirm your email", BlockCategory.EMAIL_VERIFICATION.value),
        ("verification email", BlockCategory.EMAIL_VERIFICATION.value),
        ("email verification", BlockCategory.EMAIL_VERIFICATION.value),
        ("click the link we sent", BlockCategory.EMAIL_VERIFICATION.value),
        ("verify your phone", BlockCategory.SMS_VERIFICATION.value),
        ("sent a code to your phone", BlockCategory.SMS_VERIFICATION.value),
        ("text message with a code", BlockCategory.SMS_VERIFICATION.value),
        ("sms code", BlockCategory.SMS_VERIFICATION.value),
        ("sms verification", BlockCategory.SMS_VERIFICATION.value),
        ("captcha", BlockCategory.CAPTCHA.value),
        ("i'm not a robot", BlockCategory.CAPTCHA.value),
        ("i am not a robot", BlockCategory.CAPTCHA.value),
        ("verify you are human", BlockCategory.CAPTCHA.value),
        ("verify you're human", BlockCategory.CAPTCHA.value),
        ("are you a robot", BlockCategory.CAPTCHA.value),
        ("press and hold", BlockCategory.CAPTCHA.value),
        ("log in to continue", BlockCategory.LOGIN_REQUIRED.value),
        ("sign in to continue", BlockCategory.LOGIN_REQUIRED.value),
        ("please log in", BlockCategory.LOGIN_REQUIRED.value),
        ("please sign in", BlockCategory.LOGIN_REQUIRED.value),
        ("you must be logged in", BlockCategory.LOGIN_REQUIRED.value),
        ("your session has expired", BlockCategory.LOGIN_REQUIRED.value),
        ("create an account to continue", BlockCategory.ACCOUNT_REQUIRED.value),
        ("create an account to see", BlockCategory.ACCOUNT_REQUIRED.value),
        ("sign up to continue", BlockCategory.ACCOUNT_REQUIRED.value),
        ("sign up to see", BlockCategory.ACCOUNT_REQUIRED.value),
        ("register to continue", BlockCategory.ACCOUNT_REQUIRED.value),
        ("account required", BlockCategory.ACCOUNT_REQUIRED.value),
    ),
)

# Verification inputs and challenge widgets that block even without telltale text.
BLOCKER_PROBES: tuple[str, ...] = (
    'input[autocomplete="one-time-code"]',
    'input[name*="otp" i]',
    'input[id*="otp" i]',
    'input[name*="verification" i]',
    'input[name*="2fa" i]',
    'iframe[src*="recaptcha"]',
    'iframe[src*="hcaptcha"]',
    'iframe[src*="challenges.cloudflare.com"]',
    ".g-recaptcha",
    ".h-captcha",
    ".cf-turnstile",
    "#captcha",
)
