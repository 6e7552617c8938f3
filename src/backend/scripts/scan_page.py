"""
Fetch a web page and run one subscription scan over it.

Usage:
    python scripts/scan_page.py https://www.netflix.com/signup/planform [--full]
"""

import argparse
import logging
import sys
from pathlib import Path

import requests

# Add backend root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from guardian.config import settings
from guardian.models.subscription import DetectedSubscription
from guardian.services.lifecycle import ScanLifecycleController
from guardian.services.page_detector import PageSnapshot
from guardian.utils.errors import MalformedInput
from guardian.utils.money import format_money

logger = logging.getLogger(__name__)


def fetch_snapshot(url: str, timeout: float = 15.0) -> PageSnapshot:
    response = requests.get(url, timeout=timeout, headers={
        "User-Agent": "Mozilla/5.0 (compatible; SubscriptionGuardian/0.1)"
    })
    response.raise_for_status()
    return PageSnapshot.from_html(response.text, response.url)


def show(result) -> None:
    if isinstance(result, DetectedSubscription):
        print(f"Service:  {result.service_name}")
        print(f"Price:    {format_money(result.price)} ({result.billing_cycle.value})")
        print(f"Category: {result.category.value}")
        if result.is_trial:
            print(f"Trial:    {result.trial_duration or '?'} days, ends {result.trial_end_date or 'unknown'}")
    else:
        print(f"Detected by {result.kind.value}: {result.content[:120]}")


def main():
    parser = argparse.ArgumentParser(description="Scan a page for subscription offers")
    parser.add_argument('url')
    parser.add_argument('--full', action='store_true', help="build a full subscription record")
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL)

    try:
        snapshot = fetch_snapshot(args.url)
    except (requests.RequestException, MalformedInput) as e:
        print(f"Could not load {args.url}: {e}")
        sys.exit(1)

    controller = ScanLifecycleController(lambda: snapshot, present=show, full_record=args.full)
    result = controller.page_loaded()
    controller.teardown()

    if result is None:
        print("No subscription found")


if __name__ == "__main__":
    main()
