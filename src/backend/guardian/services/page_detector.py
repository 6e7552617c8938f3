"""
Page-level subscription detection over a DOM snapshot.

Detection runs in strict priority order and stops at the first phase with a
hit: platform-specific selectors, then subscription keywords in page
elements, then price patterns in the visible text. Platform selectors always
win over a price match on the same page.
"""

import logging
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from guardian.models.subscription import (
    DetectedSubscription,
    DetectionKind,
    DetectionResult,
    Platform,
)
from guardian.services.extractors import (
    categorize_subscription,
    detect_platform_type,
    extract_price,
    find_billing_cycle,
    find_price_signal,
    find_trial_info,
    first_term_in,
    split_url,
)
from guardian.utils.errors import MalformedInput
from guardian.utils.patterns import (
    CANCELLATION_TERMS,
    PAGE_ELEMENT_SELECTOR,
    PAGE_KEYWORDS,
    PAYMENT_TERMS,
    PLATFORMS_BY_NAME,
    SITE_PROFILES,
    SUBSCRIPTION_TERMS,
    SiteProfile,
)

logger = logging.getLogger(__name__)

_NON_VISUAL_TAGS = ["script", "style", "noscript", "template"]


class PageSnapshot:
    """Read-only view of a page's DOM and location."""

    def __init__(self, soup: BeautifulSoup, url: str):
        self.soup = soup
        self.url = url or ""

    @classmethod
    def from_html(cls, html: str, url: str) -> "PageSnapshot":
        """
        Parse raw HTML into a snapshot, dropping non-visual tags.

        Raises:
            MalformedInput: If the markup cannot be parsed
        """
        if not isinstance(html, (str, bytes)):
            raise MalformedInput(f"Expected HTML text, got {type(html).__name__}")

        try:
            soup = BeautifulSoup(html, "html.parser")
        except (TypeError, ValueError, AssertionError) as e:
            raise MalformedInput(f"Unparseable HTML: {e}") from e

        for tag in soup(_NON_VISUAL_TAGS):
            tag.decompose()
        return cls(soup, url)

    @property
    def hostname(self) -> str:
        return split_url(self.url)[0]

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    @property
    def visible_text(self) -> str:
        root = self.soup.body or self.soup
        return root.get_text(separator=" ", strip=True)

    @property
    def title(self) -> str:
        if self.soup.title and self.soup.title.string:
            return self.soup.title.string.strip()
        return ""

    @property
    def meta_title(self) -> str:
        meta = self.soup.find("meta", attrs={"property": "og:title"})
        if meta and meta.get("content"):
            return meta["content"].strip()
        return ""


def element_text(element: Tag) -> str:
    """Equivalent of textContent.trim()."""
    return element.get_text().strip()


class PageDetector:
    """
    Detects subscription evidence on one page snapshot.

    Once a result has been produced it is cached; later calls return the same
    object without scanning again.
    """

    def __init__(self, snapshot: PageSnapshot):
        self.snapshot = snapshot
        self._last_result: Optional[DetectionResult] = None
        self._last_subscription: Optional[DetectedSubscription] = None

    @property
    def url(self) -> str:
        return self.snapshot.url

    def site_profile(self) -> Optional[SiteProfile]:
        """First site profile whose host matches the page, if any."""
        hostname = self.snapshot.hostname
        for profile in SITE_PROFILES:
            if profile.matches_host(hostname):
                return profile
        return None

    def detect(self) -> Optional[DetectionResult]:
        """
        Run the three detection phases in order.

        Returns:
            DetectionResult for the first phase that hits, or None
        """
        if self._last_result is not None:
            return self._last_result

        logger.debug("Scanning page for subscription elements", extra={"url": self.url})

        result = (
            self._detect_platform_element()
            or self._detect_keyword_element()
            or self._detect_price_text()
        )

        if result is not None:
            self._last_result = result
            logger.info("Subscription signal detected", extra={
                "url": self.url,
                "kind": result.kind.value,
                "keyword": result.keyword,
                "platform": result.platform
            })
        return result

    def _detect_platform_element(self) -> Optional[DetectionResult]:
        profile = self.site_profile()
        if profile is None:
            return None

        for selector in profile.selectors:
            element = self.snapshot.select_one(selector)
            if element is not None:
                return DetectionResult(
                    kind=DetectionKind.PLATFORM,
                    platform=profile.label,
                    content=element_text(element),
                    url=self.url,
                )
        return None

    def _detect_keyword_element(self) -> Optional[DetectionResult]:
        for element in self.snapshot.select(PAGE_ELEMENT_SELECTOR):
            text = element_text(element)
            if not text:
                continue

            keyword = first_term_in(text, PAGE_KEYWORDS)
            if keyword:
                return DetectionResult(
                    kind=DetectionKind.KEYWORD,
                    keyword=keyword,
                    content=text,
                    url=self.url,
                )
        return None

    def _detect_price_text(self) -> Optional[DetectionResult]:
        signal = find_price_signal(self.snapshot.visible_text)
        if signal is None:
            return None

        spec, matched = signal
        return DetectionResult(
            kind=DetectionKind.PRICE,
            pattern=spec.name,
            content=matched,
            url=self.url,
        )

    def _platform_selectors(self, platform: Platform) -> Tuple[str, ...]:
        selectors: Tuple[str, ...] = ()
        profile = self.site_profile()
        if profile is not None:
            selectors += profile.selectors

        descriptor = PLATFORMS_BY_NAME.get(platform.value)
        if descriptor is not None:
            selectors += descriptor.selectors

        if platform != Platform.SAAS:
            selectors += PLATFORMS_BY_NAME["saas"].selectors
        return selectors

    def _platform_element_text(self, platform: Platform) -> Optional[str]:
        for selector in self._platform_selectors(platform):
            element = self.snapshot.select_one(selector)
            if element is not None:
                return element_text(element)
        return None

    def resolve_service_name(self) -> str:
        """og:title, then <title>, then the site's domain label."""
        for candidate in (self.snapshot.meta_title, self.snapshot.title):
            if candidate:
                return candidate

        hostname = self.snapshot.hostname
        if hostname.startswith("www."):
            hostname = hostname[4:]
        label = hostname.split(".")[0] if hostname else ""
        return label.title() or "Unknown"

    def detect_subscription(self) -> Optional[DetectedSubscription]:
        """
        Build a full subscription record from the page.

        Needs corroborating evidence (a subscription, payment or cancellation
        term, or a platform selector hit) and a parseable price; a bare price
        is not enough.

        Returns:
            DetectedSubscription or None
        """
        if self._last_subscription is not None:
            return self._last_subscription

        text = self.snapshot.visible_text
        platform = detect_platform_type(self.url, text)
        selector_text = self._platform_element_text(platform)

        has_evidence = (
            first_term_in(text, SUBSCRIPTION_TERMS) is not None
            or first_term_in(text, PAYMENT_TERMS) is not None
            or first_term_in(text, CANCELLATION_TERMS) is not None
            or selector_text is not None
        )
        if not has_evidence:
            logger.debug("No corroborating subscription evidence", extra={"url": self.url})
            return None

        price = extract_price(selector_text) if selector_text else None
        if price is None:
            price = extract_price(text)
        if price is None:
            logger.debug("Subscription evidence without a price", extra={"url": self.url})
            return None

        trial = find_trial_info(text)
        subscription = DetectedSubscription(
            service_name=self.resolve_service_name(),
            price=price,
            billing_cycle=find_billing_cycle(text),
            category=categorize_subscription(platform, text),
            url=self.url,
            platform=platform,
            **trial.model_dump(),
        )

        self._last_subscription = subscription
        logger.info("Subscription record built", extra={
            "url": self.url,
            "service_name": subscription.service_name,
            "price": subscription.price,
            "platform": platform.value
        })
        return subscription
