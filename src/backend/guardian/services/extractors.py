"""
Field extractors shared by the page, email and document detectors.

Every function here is pure and total over its input: "no match" is an
ordinary return value (None or a default enum member), never an exception.
"""

import re
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from guardian.models.subscription import BillingCycle, Category, Platform, TrialInfo
from guardian.utils.money import parse_amount
from guardian.utils.patterns import (
    BILLING_CYCLE_CUES,
    CATEGORY_KEYWORDS,
    PLATFORM_DOMAINS,
    PLATFORMS_BY_NAME,
    PRICE_PATTERNS,
    STREAMING_DOMAINS,
    TRIAL_DURATION_PATTERN,
    TRIAL_END_PATTERN,
    TRIAL_TERMS,
    PatternSpec,
)

logger = logging.getLogger(__name__)

_SAAS_TIER_RE = re.compile(
    r'\b(?:' + '|'.join(re.escape(t) for t in PLATFORMS_BY_NAME['saas'].tiers) + r')\b',
    re.IGNORECASE,
)

_DATE_FORMATS = (
    '%B %d, %Y', '%b %d, %Y',
    '%B %d %Y', '%b %d %Y',
    '%d %B %Y', '%d %b %Y',
    '%Y-%m-%d',
)

# Platform-declared categories, applied at their family's position.
_PLATFORM_FAMILY = {
    Platform.TEBEX: Category.GAMING,
    Platform.SAAS: Category.SOFTWARE,
}


def first_term_in(text: str, terms: Iterable[str]) -> Optional[str]:
    """Return the first term (in list order) contained in text, case-insensitively."""
    lowered = (text or '').lower()
    for term in terms:
        if term.lower() in lowered:
            return term
    return None


def find_price_signal(text: str) -> Optional[Tuple[PatternSpec, str]]:
    """
    Find the first price pattern (in library order) that matches text.

    Percentage-only forms count here, so this answers "is there pricing
    language", not "what does it cost".

    Returns:
        (pattern, matched substring) or None
    """
    if not text:
        return None

    for spec in PRICE_PATTERNS:
        match = spec.compiled.search(text)
        if match:
            return spec, match.group(0)
    return None


def extract_price(text: str) -> Optional[float]:
    """
    Extract a monetary amount using the first price pattern that parses.

    Args:
        text: Free text (page text, email body, OCR output)

    Returns:
        Amount as float, or None when no amount-bearing pattern matches
    """
    if not text:
        return None

    for spec in PRICE_PATTERNS:
        if not spec.has_amount:
            continue

        match = spec.compiled.search(text)
        if not match:
            continue

        amount = parse_amount(match.group('amount'))
        if amount is not None:
            logger.debug("Price extracted", extra={
                "pattern": spec.name,
                "raw_text": match.group(0),
                "amount": amount
            })
            return amount

    return None


def split_url(url: str) -> Tuple[str, str]:
    """Lowercased (hostname, path) of a URL; a missing scheme is assumed https."""
    if '://' not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    return (parsed.hostname or '').lower(), (parsed.path or '').lower()


def _host_matches(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith('.' + domain)


def platform_for_domain(url: str) -> Optional[Platform]:
    """
    Look up a platform from a URL or bare hostname alone.

    Returns:
        Platform or None when the domain is not a known platform
    """
    if not url:
        return None

    hostname, path = split_url(url)

    for domain, platform in PLATFORM_DOMAINS:
        if _host_matches(hostname, domain):
            return Platform(platform)

    for entry in STREAMING_DOMAINS:
        domain, _, section = entry.partition('/')
        if not _host_matches(hostname, domain):
            continue
        if section and not path.startswith('/' + section):
            continue
        return Platform.STREAMING

    return None


def detect_platform_type(url: str, text: str) -> Platform:
    """
    Classify the platform a page belongs to.

    Order: known domain, then the literal "tebex" in text, then SaaS pricing
    cues (URL contains "pricing" or a SaaS tier name appears as a word).
    """
    platform = platform_for_domain(url)
    if platform is not None:
        return platform

    lowered = (text or '').lower()
    if 'tebex' in lowered:
        return Platform.TEBEX

    if 'pricing' in (url or '').lower() or _SAAS_TIER_RE.search(lowered):
        return Platform.SAAS

    return Platform.OTHER


def categorize_subscription(platform: Platform, text: str) -> Category:
    """
    Pick a category with a fixed decision list; the first family that hits wins.

    Order: streaming, music, gaming, cloud, productivity, software, other.
    A streaming platform short-circuits before any keyword is looked at.
    """
    if platform == Platform.STREAMING:
        return Category.STREAMING

    lowered = (text or '').lower()
    for family, keywords in CATEGORY_KEYWORDS:
        category = Category(family)
        if _PLATFORM_FAMILY.get(platform) == category:
            return category
        if any(keyword in lowered for keyword in keywords):
            return category

    return Category.OTHER


def find_billing_cycle(text: str) -> BillingCycle:
    """Yearly cues first, then quarterly; monthly when neither is present."""
    lowered = (text or '').lower()
    for cycle, cues in BILLING_CYCLE_CUES:
        if any(cue in lowered for cue in cues):
            return BillingCycle(cycle)
    return BillingCycle.MONTHLY


def parse_calendar_date(date_str: str) -> Optional[date]:
    """
    Parse a calendar date token ("March 5, 2025", "5th March 2025", "2025-03-05").

    Returns:
        date or None
    """
    if not date_str:
        return None

    cleaned = re.sub(r'(\d+)(?:st|nd|rd|th)', r'\1', date_str.strip())
    cleaned = re.sub(r'^([A-Za-z]{3,9})\.', r'\1', cleaned)
    cleaned = re.sub(r'\s+', ' ', cleaned)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    return None


def find_trial_info(text: str, now: Optional[datetime] = None) -> TrialInfo:
    """
    Extract trial evidence, preferring the most precise form available.

    1. "N-day trial": duration known, start=now, end=now+N days
    2. "trial ends on <date>": end date only
    3. any trial term: is_trial with no duration or dates

    Args:
        text: Text to inspect
        now: Reference time for duration-based trials (defaults to UTC now)
    """
    if not first_term_in(text, TRIAL_TERMS):
        return TrialInfo()

    match = TRIAL_DURATION_PATTERN.compiled.search(text)
    if match:
        duration = int(match.group(1))
        start = now or datetime.now(timezone.utc)
        return TrialInfo(
            is_trial=True,
            trial_duration=duration,
            trial_start_date=start.isoformat(),
            trial_end_date=(start + timedelta(days=duration)).isoformat(),
        )

    match = TRIAL_END_PATTERN.compiled.search(text)
    if match:
        end = parse_calendar_date(match.group(1))
        if end is not None:
            end_at = datetime.combine(end, time.min, tzinfo=timezone.utc)
            return TrialInfo(is_trial=True, trial_end_date=end_at.isoformat())

    return TrialInfo(is_trial=True)
