"""
Tests for the email and document subscription parser.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from guardian.models.subscription import BillingCycle, Category
from guardian.services.parser import (
    SubscriptionParser,
    clean_service_name,
    sender_domain,
    sender_label,
)


@pytest.fixture
def parser():
    return SubscriptionParser()


class TestParseEmail:

    def test_streaming_renewal(self, parser):
        subscription = parser.parse_email(
            subject="Your Netflix subscription",
            body="Your plan costs $15.49/month. It renews on March 5, 2025.",
            message_id="msg-1"
        )

        assert subscription.service_name == "Netflix"
        assert subscription.price == 15.49
        assert subscription.billing_cycle == BillingCycle.MONTHLY
        assert subscription.next_billing_date == "2025-03-05"
        assert subscription.category == Category.STREAMING
        assert subscription.source_message_id == "msg-1"

    def test_sender_fallback_skips_mail_subdomain(self, parser):
        subscription = parser.parse_email(
            subject="Thanks for your payment",
            body="Your premium plan renewal went through. $9.99 per month.",
            sender="Spotify <no-reply@billing.spotify.com>"
        )

        assert subscription.service_name == "Spotify"
        assert subscription.category == Category.MUSIC

    def test_unrelated_message(self, parser):
        assert parser.parse_email("Lunch on Friday?", "See you at noon") is None

    def test_no_service_name(self, parser):
        assert parser.parse_email("Subscription update", "Your subscription changed") is None

    def test_missing_price_is_allowed(self, parser):
        subscription = parser.parse_email("Adobe invoice", "Your subscription invoice is attached")
        assert subscription.service_name == "Adobe"
        assert subscription.price is None


class TestServiceName:

    @pytest.mark.parametrize("subject,expected", [
        ("Your Disney+ subscription", "Disney"),
        ("Adobe invoice", "Adobe"),
        ("Spotify receipt", "Spotify"),
        ("Payment confirmation from Dropbox", "Dropbox"),
    ])
    def test_subject_patterns(self, parser, subject, expected):
        assert parser.extract_service_name(subject) == expected

    def test_clean_service_name(self):
        assert clean_service_name("  adobe-creative   CLOUD!! ") == "Adobe Creative Cloud"
        assert clean_service_name("") == ""

    def test_sender_helpers(self):
        assert sender_domain("Netflix <info@Mailer.Netflix.com>") == "mailer.netflix.com"
        assert sender_domain("no address here") is None
        assert sender_label("billing@mail.netflix.com") == "netflix"
        assert sender_label(None) is None


class TestNextBillingDate:

    @pytest.mark.parametrize("text,expected", [
        ("Next billing date: 2025-04-01", "2025-04-01"),
        ("Next payment: April 1, 2025", "2025-04-01"),
        ("Your membership renews on 1st April 2025", "2025-04-01"),
        ("Next charge on: April 1, 2025", "2025-04-01"),
        ("Next billing on: 2025-04-01", "2025-04-01"),
        ("Next payment date: 1 April 2025", "2025-04-01"),
        ("No date here", None),
    ])
    def test_dates(self, parser, text, expected):
        assert parser.extract_next_billing_date(text) == expected


class TestParseDocument:

    def test_membership_to_pattern(self, parser):
        text = "ACME FITNESS\nThank you for your membership to Gold Gym\nTotal $39.99 per month\n"
        subscription = parser.parse_document(text, filename="gym.pdf")

        assert subscription.service_name == "Gold Gym"
        assert subscription.price == 39.99
        assert subscription.source_message_id is None

    def test_first_line_used_as_subject(self, parser):
        subscription = parser.parse_document("Your Hulu subscription\nBilled $7.99/month")
        assert subscription.service_name == "Hulu"
        assert subscription.category == Category.STREAMING

    def test_filename_fallback(self, parser):
        subscription = parser.parse_document("Monthly plan\nAmount due $12.99/month",
                                             filename="gold-gym_invoice.pdf")

        assert subscription.service_name == "Gold Gym Invoice"
        assert subscription.price == 12.99

    def test_no_name_without_filename(self, parser):
        assert parser.parse_document("Monthly plan\nAmount due $12.99/month") is None

    def test_unrelated_document(self, parser):
        assert parser.parse_document("Grocery list\nMilk\nEggs") is None
