"""
Static pattern library for subscription signal detection.

Keyword sets per intent, ordered price regexes and per-platform descriptors.
Nothing here holds state. Order inside every tuple is significant: detectors
walk them front to back and stop at the first hit, so more specific entries
come before generic ones.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class PatternSpec:
    """A named regex pattern with example and notes for documentation."""
    name: str
    pattern: str
    example: str
    notes: Optional[str] = None
    flags: int = re.IGNORECASE
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'compiled', re.compile(self.pattern, self.flags))

    @property
    def has_amount(self) -> bool:
        """True when the pattern captures a monetary amount."""
        return 'amount' in self.compiled.groupindex


@dataclass(frozen=True)
class PlatformSpec:
    """Markup and vocabulary known for a class of subscription platform."""
    name: str
    selectors: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    tiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SiteProfile:
    """A specific site whose markup is stable enough for selector detection."""
    label: str
    hosts: Tuple[str, ...]
    selectors: Tuple[str, ...]

    def matches_host(self, hostname: str) -> bool:
        hostname = (hostname or '').lower()
        return any(hostname == h or hostname.endswith('.' + h) for h in self.hosts)


# ---------------------------------------------------------------------------
# Keyword sets
# ---------------------------------------------------------------------------

SUBSCRIPTION_TERMS: Tuple[str, ...] = (
    'subscription',
    'subscribe',
    'membership',
    'plan',
    'pricing',
    'billing',
    'renewal',
    'upgrade',
    'join now',
    'sign up',
    'get started',
)

PAYMENT_TERMS: Tuple[str, ...] = (
    'payment plan',
    'auto-renew',
    'recurring payment',
    'monthly charge',
    'annual fee',
    'per month',
    'per year',
    'charge',
    'invoice',
)

TRIAL_TERMS: Tuple[str, ...] = (
    'free trial',
    'trial period',
    'first month free',
    'introductory offer',
    'day trial',
    'trial ends',
    'trial expires',
)

# Account-management wording; only an existing subscription can be cancelled.
CANCELLATION_TERMS: Tuple[str, ...] = (
    'cancel subscription',
    'cancel membership',
    'cancel plan',
    'end membership',
    'unsubscribe',
    'deactivate',
    'pause subscription',
    'opt out',
)

# Scanned by the page detector keyword phase; the first entry found in an
# element's text is reported as the matched keyword.
PAGE_KEYWORDS: Tuple[str, ...] = (
    'subscribe',
    'membership',
    'pricing',
    'plan',
    'billing',
    'free trial',
    'subscription',
    'payment',
    'sign up',
    'join now',
    'monthly',
    'yearly',
    'annual',
)

# Element types visited by the keyword phase, in one document-order pass.
PAGE_ELEMENT_SELECTOR = 'a, button, div, span, p, h1, h2, h3, h4, h5, h6'

# ---------------------------------------------------------------------------
# Price patterns
# ---------------------------------------------------------------------------

# Thousands-grouped amount first so "1,299.00" is not cut at the comma. The
# lookbehind stops a match from starting in the middle of another number.
_AMOUNT = r'(?<![\d.,])(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d{2})?|\d+(?:\.\d{2})?)'
_SYMBOL = r'(?:\$|€|£|¥|₹)'
_INTL_SYMBOL = r'(?:€|£|¥|₹)'
_PERIOD = r'(?:month|mo|year|yr|week|wk)\b'

PRICE_PATTERNS: Tuple[PatternSpec, ...] = (
    PatternSpec(
        name='dollar_per_period',
        pattern=rf'\$\s*{_AMOUNT}\s*/\s*{_PERIOD}',
        example='$9.99/month',
        notes='Standard recurring price',
    ),
    PatternSpec(
        name='dollar_period_words',
        pattern=rf'\$\s*{_AMOUNT}\s*(?:per\s*(?:month|year|week)|monthly|annually|yearly)\b',
        example='$9.99 per month',
    ),
    PatternSpec(
        name='discount_was_now',
        pattern=rf'was\s+{_SYMBOL}\s*\d[\d,]*(?:\.\d{{2}})?\s+now\s+{_SYMBOL}\s*{_AMOUNT}',
        example='was $19.99 now $14.99',
        notes='Discounted price; the amount is the current ("now") price',
    ),
    PatternSpec(
        name='currency_code',
        pattern=rf'\b(?:USD|EUR|GBP|JPY|INR)\s*{_AMOUNT}',
        example='USD 12.00',
    ),
    PatternSpec(
        name='intl_symbol_prefix',
        pattern=rf'{_INTL_SYMBOL}\s*{_AMOUNT}(?:\s*/\s*{_PERIOD})?',
        example='€12.00/month',
        notes='Comma is never a decimal separator: "€12,00" captures 12',
    ),
    PatternSpec(
        name='intl_symbol_suffix',
        pattern=rf'{_AMOUNT}\s*{_INTL_SYMBOL}(?:\s*/\s*{_PERIOD})?',
        example='12.00 €',
    ),
    PatternSpec(
        name='dollar',
        pattern=rf'\$\s*{_AMOUNT}(?:\s*/\s*{_PERIOD})?',
        example='$59',
        notes='Bare dollar amount (last amount-bearing resort)',
    ),
    PatternSpec(
        name='save_percent',
        pattern=r'save\s+\d+%',
        example='save 20%',
        notes='Price signal only, carries no amount',
    ),
    PatternSpec(
        name='percent_off',
        pattern=r'\d+%\s+off',
        example='20% off',
        notes='Price signal only, carries no amount',
    ),
)

# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------

PLATFORMS: Tuple[PlatformSpec, ...] = (
    PlatformSpec(
        name='patreon',
        selectors=(
            '[data-tag="pledge-card"]',
            '.pledge-card',
            '.tier-card',
            '[data-test-tag="patron-button"]',
        ),
        tiers=('tier', 'reward', 'pledge', 'patron', 'benefits', 'perks'),
    ),
    PlatformSpec(
        name='tebex',
        selectors=(
            '.package-listing',
            '.package-price',
            '.subscription-package',
            '[data-package-type="subscription"]',
        ),
        keywords=(
            'server subscription',
            'recurring package',
            'monthly rank',
            'subscription package',
        ),
    ),
    PlatformSpec(
        name='saas',
        selectors=(
            '.pricing-table',
            '.pricing-plan',
            '.pricing-tier',
            '[data-plan-type]',
        ),
        tiers=('basic', 'pro', 'enterprise', 'starter', 'business', 'premium'),
    ),
    PlatformSpec(
        name='streaming',
        keywords=('stream', 'watch', 'video', 'movies', 'shows', 'live'),
        tiers=('basic', 'standard', 'premium', 'family plan', 'student plan'),
    ),
)

PLATFORMS_BY_NAME = {spec.name: spec for spec in PLATFORMS}

PLATFORM_DOMAINS: Tuple[Tuple[str, str], ...] = (
    ('patreon.com', 'patreon'),
    ('tebex.io', 'tebex'),
)

# Entries with a path component only match that section of the site.
STREAMING_DOMAINS: Tuple[str, ...] = (
    'netflix.com',
    'disneyplus.com',
    'hulu.com',
    'amazon.com/prime',
    'youtube.com/premium',
)

SITE_PROFILES: Tuple[SiteProfile, ...] = (
    SiteProfile(
        label='Netflix',
        hosts=('netflix.com',),
        selectors=(
            '.account-section',
            '.profile-hub',
            '.membership-section',
            '[data-uia*="plan"]',
            '[data-uia*="subscription"]',
        ),
    ),
    SiteProfile(
        label='Patreon',
        hosts=('patreon.com',),
        selectors=PLATFORMS_BY_NAME['patreon'].selectors,
    ),
    SiteProfile(
        label='Tebex',
        hosts=('tebex.io',),
        selectors=PLATFORMS_BY_NAME['tebex'].selectors,
    ),
)

# ---------------------------------------------------------------------------
# Classification cues
# ---------------------------------------------------------------------------

# Checked in this order; first family with a hit wins.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('streaming', PLATFORMS_BY_NAME['streaming'].keywords + (
        'netflix', 'hulu', 'disney+', 'disneyplus', 'hbo', 'crunchyroll',
    )),
    ('music', ('music', 'audio', 'spotify', 'soundcloud')),
    ('gaming', ('game', 'gaming')),
    ('cloud', ('cloud', 'storage', 'backup')),
    ('productivity', ('productivity', 'business', 'work')),
    ('software', ('software', 'app')),
)

# Yearly cues are checked before quarterly; monthly is the default.
BILLING_CYCLE_CUES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('yearly', ('per year', '/year', '/yr', 'annually', 'yearly')),
    ('quarterly', ('quarterly', 'every 3 months', '/quarter')),
)

# ---------------------------------------------------------------------------
# Dates, trials and names
# ---------------------------------------------------------------------------

DATE_TOKEN = (
    r'[A-Za-z]{3,9}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}'
    r'|\d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]{3,9}\s+\d{4}'
    r'|\d{4}-\d{2}-\d{2}'
)

TRIAL_DURATION_PATTERN = PatternSpec(
    name='trial_duration',
    pattern=r'(\d{1,3})[\s-]*days?\s+(?:free\s+)?trial',
    example='14-day free trial',
)

TRIAL_END_PATTERN = PatternSpec(
    name='trial_end_date',
    pattern=rf'trial\s+(?:period\s+)?(?:ends|expires)\s+(?:on\s+)?({DATE_TOKEN})',
    example='Your trial ends on March 5, 2025',
)

NEXT_BILLING_PATTERNS: Tuple[PatternSpec, ...] = (
    PatternSpec(
        name='next_billing_date',
        pattern=rf'next\s+billing\s+date:\s*({DATE_TOKEN})',
        example='Next billing date: March 5, 2025',
    ),
    PatternSpec(
        name='next_payment',
        pattern=rf'next\s+payment:\s*({DATE_TOKEN})',
        example='Next payment: March 5, 2025',
    ),
    PatternSpec(
        name='renews_on',
        pattern=rf'renews?\s+on\s+({DATE_TOKEN})',
        example='Your plan renews on March 5, 2025',
    ),
    PatternSpec(
        name='next_charge',
        pattern=rf'next\s+(?:billing|payment|charge)\s*(?:date|on)?\s*:\s*({DATE_TOKEN})',
        example='Next charge on: March 5, 2025',
        notes='Wording used on invoices and statements',
    ),
)

SUBJECT_NAME_PATTERNS: Tuple[PatternSpec, ...] = (
    PatternSpec(
        name='your_x_subscription',
        pattern=r'Your\s+(.+?)\s+subscription',
        example='Your Netflix subscription',
    ),
    PatternSpec(
        name='x_invoice',
        pattern=r'(.+?)\s+invoice',
        example='Adobe invoice',
    ),
    PatternSpec(
        name='x_receipt',
        pattern=r'(.+?)\s+receipt',
        example='Spotify receipt',
    ),
    PatternSpec(
        name='payment_confirmation_from',
        pattern=r'Payment\s+confirmation\s+from\s+(.+)',
        example='Payment confirmation from Dropbox',
    ),
)

DOCUMENT_NAME_PATTERN = PatternSpec(
    name='subscription_to_x',
    pattern=r'(?:subscription|plan|membership)\s+(?:to|for)\s+([A-Za-z0-9][A-Za-z0-9 ]*)',
    example='Your membership to Gold Gym',
)

# Mail subdomains dropped before taking the sender's service label.
SENDER_SUBDOMAINS: Tuple[str, ...] = (
    'mail', 'email', 'e', 'em', 'info', 'news', 'notifications',
    'billing', 'account', 'accounts', 'no-reply', 'noreply',
)
